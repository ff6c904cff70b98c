"""Best-effort delivery of network events.

Publishing is observability, not registry state: a publisher never raises
to its caller. Failures are reported to the request logger and counted.
"""

from typing import Any, Protocol, runtime_checkable

from redis.asyncio import Redis
from redis.exceptions import RedisError

from netreg.observability.logging import get_logger, redact_url
from netreg.observability.metrics import EVENTS_PUBLISHED

from .events import NetworkEvent

logger = get_logger(__name__)


@runtime_checkable
class EventPublisher(Protocol):
    """Delivers network events to downstream consumers."""

    async def publish(self, event: NetworkEvent, *, logger: Any) -> bool:
        """Deliver ``event``; True when delivered, False when skipped or failed."""
        ...


class RedisEventPublisher:
    """Publishes network events on a Redis pub/sub channel.

    With no ``redis_url`` the publisher is disabled and every call is a
    no-op.

    Parameters
    ----------
    redis_url : str | None
        Redis connection URL, or None to disable publishing.
    channel : str
        Channel the JSON-encoded events are published on.
    """

    def __init__(self, redis_url: str | None, channel: str = "netreg:network-events"):
        self._redis_url = redis_url
        self._channel = channel
        self._redis: Redis | None = None

    @property
    def enabled(self) -> bool:
        return bool(self._redis_url)

    @property
    def channel(self) -> str:
        return self._channel

    async def connect(self) -> None:
        """Create the Redis client.

        An unreachable server is logged and tolerated; publishes made while
        it is down fail and are logged individually.
        """
        if not self.enabled:
            logger.warning("Network event publisher is disabled, no Redis URL configured")
            return
        if self._redis is not None:
            return

        self._redis = Redis.from_url(self._redis_url, decode_responses=True)
        try:
            await self._redis.ping()
            logger.info(
                "Network event publisher connected",
                url=redact_url(self._redis_url),
                channel=self._channel,
            )
        except (RedisError, OSError) as e:
            logger.warning("Redis ping failed, events may not be delivered", error=str(e))

    async def close(self) -> None:
        """Release the Redis client."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Network event publisher closed")

    async def publish(self, event: NetworkEvent, *, logger: Any) -> bool:
        event_type = event.event_type.value

        if not self.enabled:
            logger.debug("Event publishing skipped, not configured", event_type=event_type)
            EVENTS_PUBLISHED.labels(event_type=event_type, status="skipped").inc()
            return False

        logger.info(
            "Publishing network event",
            event_type=event_type,
            network_id=event.data.id,
            correlation_id=event.correlation_id,
        )

        try:
            if self._redis is None:
                await self.connect()
            receivers = await self._redis.publish(self._channel, event.to_json())
        except Exception as e:
            logger.error(
                "Failed to publish network event",
                event_type=event_type,
                network_id=event.data.id,
                error=str(e),
            )
            EVENTS_PUBLISHED.labels(event_type=event_type, status="failed").inc()
            return False

        logger.info(
            "Network event published",
            event_type=event_type,
            network_id=event.data.id,
            receivers=receivers,
        )
        EVENTS_PUBLISHED.labels(event_type=event_type, status="published").inc()
        return True
