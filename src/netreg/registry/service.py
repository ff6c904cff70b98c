"""Network registry use cases.

Every use case locates or validates first, then mutates through the store,
then publishes a change event best-effort. The store call always completes
before publication is attempted, and a publication failure never changes
the use case's result.
"""

import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from netreg.observability.logging import bind_correlation_id, get_logger
from netreg.observability.metrics import ACTIVE_NETWORKS, OPERATION_DURATION, OPERATIONS

from .errors import ConflictError, FieldError, NotFoundError, RegistryError, ValidationError
from .events import NetworkEvent, NetworkEventType
from .models import Network, NetworkCreate, NetworkUpdate
from .publisher import EventPublisher
from .store import NetworkStore


@dataclass(frozen=True)
class Account:
    """Authenticated caller, as resolved by the transport layer."""

    id: str
    email: str
    role: str


@dataclass(frozen=True)
class RequestContext:
    """Per-request state handed in by the caller."""

    correlation_id: str
    logger: Any
    account: Account | None = None

    @classmethod
    def create(
        cls,
        correlation_id: str | None = None,
        account: Account | None = None,
        logger: Any = None,
    ) -> "RequestContext":
        """Build a context, generating a correlation ID when none is given."""
        correlation_id = correlation_id or str(uuid.uuid4())
        base = logger if logger is not None else get_logger("netreg.request")
        return cls(
            correlation_id=correlation_id,
            logger=bind_correlation_id(base, correlation_id),
            account=account,
        )


@contextmanager
def _observe(operation: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    except RegistryError as e:
        OPERATIONS.labels(operation=operation, status=e.code.lower()).inc()
        raise
    except Exception:
        OPERATIONS.labels(operation=operation, status="error").inc()
        raise
    else:
        OPERATIONS.labels(operation=operation, status="ok").inc()
    finally:
        OPERATION_DURATION.labels(operation=operation).observe(time.perf_counter() - start)


class NetworkRegistry:
    """Orchestrates the network registry use cases.

    Parameters
    ----------
    store : NetworkStore
        Source of truth for networks.
    publisher : EventPublisher
        Best-effort change event transport.
    """

    def __init__(self, store: NetworkStore, publisher: EventPublisher):
        self._store = store
        self._publisher = publisher

    async def create(self, ctx: RequestContext, data: NetworkCreate) -> Network:
        """Register a new network.

        Raises
        ------
        ConflictError
            If any network, active or not, already holds ``data.chain_id``.
        """
        log = ctx.logger
        with _observe("create"):
            log.info("Creating network", chain_id=data.chain_id)

            if await self._store.exists_by_chain_id(data.chain_id, logger=log):
                log.warning("Network with chain id already exists", chain_id=data.chain_id)
                raise ConflictError.chain_id_taken(data.chain_id)

            network = await self._store.create(data, logger=log)
            log.info("Network created", network_id=network.id, chain_id=network.chain_id)

        await self._notify(ctx, NetworkEventType.NETWORK_CREATED, network)
        return network

    async def get_by_id(self, ctx: RequestContext, network_id: str) -> Network:
        """Fetch a network by id, active or not."""
        log = ctx.logger
        with _observe("get"):
            log.info("Getting network by id", network_id=network_id)
            network = await self._store.find_by_id(network_id, logger=log)
            if network is None:
                log.warning("Network not found", network_id=network_id)
                raise NotFoundError("Network", network_id)
        return network

    async def list_active(self, ctx: RequestContext) -> list[Network]:
        """All active networks ordered by name."""
        log = ctx.logger
        with _observe("list_active"):
            log.info("Listing active networks")
            networks = await self._store.find_all_active(logger=log)
            ACTIVE_NETWORKS.set(len(networks))
            log.info("Active networks listed", count=len(networks))
        return networks

    async def update(self, ctx: RequestContext, network_id: str, data: NetworkUpdate) -> Network:
        """Replace every public field of a network except ``active``.

        Raises
        ------
        ValidationError
            If ``data`` lacks a field a full update must carry.
        """
        missing = data.missing_for_full_update()
        if missing:
            raise ValidationError(
                "Full update requires every network field",
                [FieldError(field=name, message="field required") for name in missing],
            )
        with _observe("update"):
            network = await self._apply_update(ctx, network_id, data)
        await self._notify(ctx, NetworkEventType.NETWORK_UPDATED, network)
        return network

    async def partial_update(
        self, ctx: RequestContext, network_id: str, data: NetworkUpdate
    ) -> Network:
        """Change only the fields set on ``data``."""
        with _observe("partial_update"):
            network = await self._apply_update(ctx, network_id, data)
        await self._notify(ctx, NetworkEventType.NETWORK_UPDATED, network)
        return network

    async def soft_delete(self, ctx: RequestContext, network_id: str) -> None:
        """Mark a network inactive. Its row and chain id stay reserved."""
        log = ctx.logger
        with _observe("soft_delete"):
            log.info("Soft deleting network", network_id=network_id)

            existing = await self._store.find_by_id(network_id, logger=log)
            if existing is None:
                log.warning("Network not found for deletion", network_id=network_id)
                raise NotFoundError("Network", network_id)

            # A concurrent delete can still win between the lookup and the write
            if not await self._store.soft_delete(network_id, logger=log):
                log.warning("Network disappeared before deletion", network_id=network_id)
                raise NotFoundError("Network", network_id)

            log.info("Network soft deleted", network_id=network_id)

        await self._notify(ctx, NetworkEventType.NETWORK_DELETED, existing.deactivated())

    async def _apply_update(
        self, ctx: RequestContext, network_id: str, data: NetworkUpdate
    ) -> Network:
        log = ctx.logger
        log.info("Updating network", network_id=network_id)

        existing = await self._store.find_by_id(network_id, logger=log)
        if existing is None:
            log.warning("Network not found for update", network_id=network_id)
            raise NotFoundError("Network", network_id)

        # Only a changed chain id needs the uniqueness check
        if data.chain_id is not None and data.chain_id != existing.chain_id:
            if await self._store.exists_by_chain_id(
                data.chain_id, exclude_id=network_id, logger=log
            ):
                log.warning("Chain id already used by another network", chain_id=data.chain_id)
                raise ConflictError.chain_id_taken(data.chain_id)

        updated = await self._store.update(network_id, data, logger=log)
        if updated is None:
            raise NotFoundError("Network", network_id)

        log.info("Network updated", network_id=network_id)
        return updated

    async def _notify(
        self, ctx: RequestContext, event_type: NetworkEventType, network: Network
    ) -> None:
        event = NetworkEvent.build(event_type, network, ctx.correlation_id)
        try:
            await self._publisher.publish(event, logger=ctx.logger)
        except Exception as e:
            ctx.logger.error(
                "Network event publication raised",
                event_type=event_type.value,
                network_id=network.id,
                error=str(e),
            )
