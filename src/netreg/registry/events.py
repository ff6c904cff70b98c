"""Network change events.

The JSON produced by :meth:`NetworkEvent.to_json` is the wire format seen by
every consumer, so its keys are camelCase and must stay stable.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .models import Network


class NetworkEventType(str, Enum):
    """Kinds of network change."""

    NETWORK_CREATED = "NETWORK_CREATED"
    NETWORK_UPDATED = "NETWORK_UPDATED"
    NETWORK_DELETED = "NETWORK_DELETED"


@dataclass(frozen=True)
class NetworkEventData:
    """Flattened snapshot of a network's public fields."""

    id: str
    chain_id: int
    name: str
    rpc_url: str
    other_rpc_urls: tuple[str, ...]
    test_net: bool
    block_explorer_url: str
    fee_multiplier: float
    gas_limit_multiplier: float
    active: bool
    default_signer_address: str

    @classmethod
    def from_network(cls, network: Network) -> "NetworkEventData":
        return cls(
            id=network.id,
            chain_id=network.chain_id,
            name=network.name,
            rpc_url=network.rpc_url,
            other_rpc_urls=tuple(network.other_rpc_urls),
            test_net=network.test_net,
            block_explorer_url=network.block_explorer_url,
            fee_multiplier=network.fee_multiplier,
            gas_limit_multiplier=network.gas_limit_multiplier,
            active=network.active,
            default_signer_address=network.default_signer_address,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "chainId": self.chain_id,
            "name": self.name,
            "rpcUrl": self.rpc_url,
            "otherRpcUrls": list(self.other_rpc_urls),
            "testNet": self.test_net,
            "blockExplorerUrl": self.block_explorer_url,
            "feeMultiplier": self.fee_multiplier,
            "gasLimitMultiplier": self.gas_limit_multiplier,
            "active": self.active,
            "defaultSignerAddress": self.default_signer_address,
        }


@dataclass(frozen=True)
class NetworkEvent:
    """A change notification for a single network."""

    event_type: NetworkEventType
    timestamp: datetime
    correlation_id: str
    data: NetworkEventData

    @classmethod
    def build(
        cls,
        event_type: NetworkEventType,
        network: Network,
        correlation_id: str,
        timestamp: datetime | None = None,
    ) -> "NetworkEvent":
        """Snapshot ``network`` into a new event stamped with the current UTC time."""
        return cls(
            event_type=event_type,
            timestamp=timestamp or datetime.now(timezone.utc),
            correlation_id=correlation_id,
            data=NetworkEventData.from_network(network),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventType": self.event_type.value,
            "timestamp": self.timestamp.isoformat(),
            "correlationId": self.correlation_id,
            "data": self.data.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))
