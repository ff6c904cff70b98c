"""Error taxonomy for the network registry.

Each error carries a stable ``code`` and an ``http_status`` hint so the
calling transport layer can map it without inspecting messages.
"""

from dataclasses import dataclass


class RegistryError(Exception):
    """Base class for registry errors."""

    code = "REGISTRY_ERROR"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable error body."""
        return {"code": self.code, "message": self.message}


class NotFoundError(RegistryError):
    """No network exists for the given identifier."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} with identifier '{identifier}' not found")
        self.resource = resource
        self.identifier = identifier


class ConflictError(RegistryError):
    """A write would violate chain id uniqueness."""

    code = "CONFLICT"
    http_status = 409

    @classmethod
    def chain_id_taken(cls, chain_id: int) -> "ConflictError":
        return cls(f"Network with chainId {chain_id} already exists")


@dataclass
class FieldError:
    """A single invalid field in a payload."""

    field: str
    message: str


class ValidationError(RegistryError):
    """A payload breaks a network invariant."""

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(self, message: str, errors: list[FieldError] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.errors:
            result["errors"] = [{"field": e.field, "message": e.message} for e in self.errors]
        return result


class StoreError(RegistryError):
    """The storage backend failed for a reason other than a conflict."""

    code = "STORE_ERROR"
    http_status = 500
