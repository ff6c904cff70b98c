"""Network entity and write payloads.

The entity is a plain dataclass owned by the store. Payloads are pydantic
models: they accept both snake_case and the camelCase names used on the
wire, and enforce the per-field invariants of a network.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

import pydantic
from eth_utils import is_hex_address
from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from .errors import FieldError, ValidationError

MAX_OTHER_RPC_URLS = 10
MAX_MULTIPLIER = 999999.9999
MULTIPLIER_DECIMALS = 4

RPC_SCHEMES = frozenset({"http", "https", "ws", "wss"})
EXPLORER_SCHEMES = frozenset({"http", "https"})

_url_adapter = TypeAdapter(AnyUrl)


@dataclass
class Network:
    """A registered blockchain network.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the store.
    An inactive network keeps its row and its chain id reservation.
    """

    id: str
    chain_id: int
    name: str
    rpc_url: str
    block_explorer_url: str
    default_signer_address: str
    created_at: datetime
    updated_at: datetime
    other_rpc_urls: list[str] = field(default_factory=list)
    test_net: bool = False
    fee_multiplier: float = 1.0
    gas_limit_multiplier: float = 1.0
    active: bool = True

    def deactivated(self) -> "Network":
        """Copy of this network with ``active`` forced to False."""
        return replace(self, active=False, other_rpc_urls=list(self.other_rpc_urls))


def _check_url(value: str, schemes: frozenset[str]) -> str:
    try:
        url = _url_adapter.validate_python(value)
    except pydantic.ValidationError:
        raise ValueError(f"invalid URL: {value!r}") from None
    if url.scheme not in schemes:
        raise ValueError(f"URL scheme must be one of {', '.join(sorted(schemes))}")
    return value


def _check_multiplier(value: float) -> float:
    if round(value, MULTIPLIER_DECIMALS) != value:
        raise ValueError(f"at most {MULTIPLIER_DECIMALS} decimal places are stored")
    return value


class _NetworkPayload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    @field_validator("rpc_url", check_fields=False)
    @classmethod
    def _rpc_url(cls, value: str | None) -> str | None:
        return None if value is None else _check_url(value, RPC_SCHEMES)

    @field_validator("other_rpc_urls", check_fields=False)
    @classmethod
    def _other_rpc_urls(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [_check_url(url, RPC_SCHEMES) for url in value]

    @field_validator("block_explorer_url", check_fields=False)
    @classmethod
    def _block_explorer_url(cls, value: str | None) -> str | None:
        return None if value is None else _check_url(value, EXPLORER_SCHEMES)

    @field_validator("fee_multiplier", "gas_limit_multiplier", check_fields=False)
    @classmethod
    def _multiplier(cls, value: float | None) -> float | None:
        return None if value is None else _check_multiplier(value)

    @field_validator("default_signer_address", check_fields=False)
    @classmethod
    def _signer_address(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if not value[:2].lower() == "0x" or not is_hex_address(value):
            raise ValueError("must be a 0x-prefixed 40 hex digit address")
        return value


class NetworkCreate(_NetworkPayload):
    """Payload for registering a new network."""

    chain_id: int = Field(gt=0)
    name: str = Field(min_length=1, max_length=100)
    rpc_url: str = Field(max_length=500)
    other_rpc_urls: list[str] = Field(default_factory=list, max_length=MAX_OTHER_RPC_URLS)
    test_net: bool = False
    block_explorer_url: str = Field(max_length=500)
    fee_multiplier: float = Field(default=1.0, ge=0, le=MAX_MULTIPLIER)
    gas_limit_multiplier: float = Field(default=1.0, ge=0, le=MAX_MULTIPLIER)
    active: bool = True
    default_signer_address: str


class NetworkUpdate(_NetworkPayload):
    """Payload for updating a network. Unset fields are left untouched."""

    chain_id: int | None = Field(default=None, gt=0)
    name: str | None = Field(default=None, min_length=1, max_length=100)
    rpc_url: str | None = Field(default=None, max_length=500)
    other_rpc_urls: list[str] | None = Field(default=None, max_length=MAX_OTHER_RPC_URLS)
    test_net: bool | None = None
    block_explorer_url: str | None = Field(default=None, max_length=500)
    fee_multiplier: float | None = Field(default=None, ge=0, le=MAX_MULTIPLIER)
    gas_limit_multiplier: float | None = Field(default=None, ge=0, le=MAX_MULTIPLIER)
    active: bool | None = None
    default_signer_address: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields the caller set, excluding explicit nulls."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

    def missing_for_full_update(self) -> list[str]:
        """Fields a full update must carry but this payload lacks."""
        present = self.changes()
        return [name for name in FULL_UPDATE_FIELDS if name not in present]


# A full update replaces every public field except the activity flag.
FULL_UPDATE_FIELDS = tuple(name for name in NetworkCreate.model_fields if name != "active")


def _to_validation_error(exc: pydantic.ValidationError, message: str) -> ValidationError:
    errors = [
        FieldError(field=".".join(str(p) for p in err["loc"]) or "body", message=err["msg"])
        for err in exc.errors()
    ]
    return ValidationError(message, errors)


def parse_create(payload: dict[str, Any]) -> NetworkCreate:
    """Validate a create payload, raising the registry's ValidationError."""
    try:
        return NetworkCreate.model_validate(payload)
    except pydantic.ValidationError as e:
        raise _to_validation_error(e, "Invalid network payload") from e


def parse_update(payload: dict[str, Any]) -> NetworkUpdate:
    """Validate an update payload, raising the registry's ValidationError."""
    try:
        return NetworkUpdate.model_validate(payload)
    except pydantic.ValidationError as e:
        raise _to_validation_error(e, "Invalid network update payload") from e
