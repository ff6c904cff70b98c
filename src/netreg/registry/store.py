"""Storage contract for the network registry."""

from typing import Any, Protocol, runtime_checkable

from .models import Network, NetworkCreate, NetworkUpdate


@runtime_checkable
class NetworkStore(Protocol):
    """Source of truth for registered networks.

    Every method takes the request-scoped ``logger`` and may raise
    :class:`~netreg.registry.errors.StoreError`. ``create`` and ``update``
    raise :class:`~netreg.registry.errors.ConflictError` when the write hits
    the chain id uniqueness constraint, whichever row (active or not) holds it.
    """

    async def find_by_id(self, network_id: str, *, logger: Any) -> Network | None: ...

    async def find_by_chain_id(self, chain_id: int, *, logger: Any) -> Network | None: ...

    async def find_all_active(self, *, logger: Any) -> list[Network]:
        """Active networks ordered by name ascending."""
        ...

    async def create(self, data: NetworkCreate, *, logger: Any) -> Network: ...

    async def update(
        self, network_id: str, data: NetworkUpdate, *, logger: Any
    ) -> Network | None:
        """Apply the fields set on ``data``; None when ``network_id`` is unknown."""
        ...

    async def soft_delete(self, network_id: str, *, logger: Any) -> bool:
        """Mark the network inactive; False when ``network_id`` is unknown."""
        ...

    async def exists_by_chain_id(
        self, chain_id: int, exclude_id: str | None = None, *, logger: Any
    ) -> bool: ...
