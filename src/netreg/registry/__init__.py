"""Network registry: entity, store, events and use cases."""

from .errors import ConflictError, NotFoundError, RegistryError, StoreError, ValidationError
from .events import NetworkEvent, NetworkEventData, NetworkEventType
from .models import Network, NetworkCreate, NetworkUpdate, parse_create, parse_update
from .publisher import EventPublisher, RedisEventPublisher
from .service import Account, NetworkRegistry, RequestContext
from .sql import Database, SqlNetworkStore
from .store import NetworkStore

__all__ = [
    "Account",
    "ConflictError",
    "Database",
    "EventPublisher",
    "Network",
    "NetworkCreate",
    "NetworkEvent",
    "NetworkEventData",
    "NetworkEventType",
    "NetworkRegistry",
    "NetworkStore",
    "NetworkUpdate",
    "NotFoundError",
    "RedisEventPublisher",
    "RegistryError",
    "RequestContext",
    "SqlNetworkStore",
    "StoreError",
    "ValidationError",
    "parse_create",
    "parse_update",
]
