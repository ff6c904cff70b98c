"""Pytest configuration and fixtures for netreg tests."""

import os
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from netreg.registry.errors import ConflictError
from netreg.registry.models import Network, NetworkCreate, NetworkUpdate
from netreg.registry.service import NetworkRegistry, RequestContext

SIGNER = "0x742d35Cc6634C0532925a3b844Bc9e7595f8fE00"


def network_payload(**overrides) -> dict:
    """A valid create payload using wire (camelCase) names."""
    payload = {
        "chainId": 1,
        "name": "Ethereum Mainnet",
        "rpcUrl": "https://eth.example.com",
        "otherRpcUrls": ["https://eth-backup.example.com"],
        "testNet": False,
        "blockExplorerUrl": "https://etherscan.io",
        "feeMultiplier": 1.0,
        "gasLimitMultiplier": 1.2,
        "defaultSignerAddress": SIGNER,
    }
    payload.update(overrides)
    return payload


class InMemoryNetworkStore:
    """Fake store honouring the NetworkStore contract.

    Records every call in ``calls`` so tests can assert which store
    operations a use case performed.
    """

    def __init__(self):
        self.rows: dict[str, Network] = {}
        self.calls: list[str] = []
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    @property
    def writes(self) -> list[str]:
        return [c for c in self.calls if c in ("create", "update", "soft_delete")]

    async def find_by_id(self, network_id, *, logger):
        self.calls.append("find_by_id")
        row = self.rows.get(network_id)
        return replace(row) if row else None

    async def find_by_chain_id(self, chain_id, *, logger):
        self.calls.append("find_by_chain_id")
        for row in self.rows.values():
            if row.chain_id == chain_id:
                return replace(row)
        return None

    async def find_all_active(self, *, logger):
        self.calls.append("find_all_active")
        active = [replace(r) for r in self.rows.values() if r.active]
        return sorted(active, key=lambda r: r.name)

    async def create(self, data: NetworkCreate, *, logger):
        self.calls.append("create")
        if any(r.chain_id == data.chain_id for r in self.rows.values()):
            raise ConflictError.chain_id_taken(data.chain_id)
        now = self._tick()
        network = Network(id=str(uuid.uuid4()), created_at=now, updated_at=now, **data.model_dump())
        self.rows[network.id] = network
        return replace(network)

    async def update(self, network_id, data: NetworkUpdate, *, logger):
        self.calls.append("update")
        row = self.rows.get(network_id)
        if row is None:
            return None
        changes = data.changes()
        if "chain_id" in changes and any(
            r.chain_id == changes["chain_id"] and r.id != network_id for r in self.rows.values()
        ):
            raise ConflictError.chain_id_taken(changes["chain_id"])
        updated = replace(row, **changes, updated_at=self._tick())
        self.rows[network_id] = updated
        return replace(updated)

    async def soft_delete(self, network_id, *, logger):
        self.calls.append("soft_delete")
        row = self.rows.get(network_id)
        if row is None:
            return False
        self.rows[network_id] = replace(row, active=False, updated_at=self._tick())
        return True

    async def exists_by_chain_id(self, chain_id, exclude_id=None, *, logger):
        self.calls.append("exists_by_chain_id")
        return any(
            r.chain_id == chain_id and r.id != exclude_id for r in self.rows.values()
        )


class RecordingPublisher:
    """Fake publisher that keeps every event it receives."""

    def __init__(self):
        self.events = []

    async def publish(self, event, *, logger):
        self.events.append(event)
        return True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear netreg-related environment variables before each test."""
    for key in list(os.environ.keys()):
        if key.startswith("NETREG_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def store():
    return InMemoryNetworkStore()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def registry(store, publisher):
    return NetworkRegistry(store, publisher)


@pytest.fixture
def ctx():
    """Request context with a mock logger to inspect log calls."""
    return RequestContext(correlation_id="corr-123", logger=MagicMock())
