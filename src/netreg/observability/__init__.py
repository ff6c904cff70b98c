"""Observability module for netreg."""

from .health import CheckResult, DatabaseHealthCheck, HealthCheck, HealthServer, HealthStatus
from .logging import (
    bind_correlation_id,
    clear_correlation_id,
    configure_logging,
    get_logger,
    set_correlation_id,
)
from .metrics import ACTIVE_NETWORKS, EVENTS_PUBLISHED, OPERATION_DURATION, OPERATIONS

__all__ = [
    # Health
    "CheckResult",
    "DatabaseHealthCheck",
    "HealthCheck",
    "HealthServer",
    "HealthStatus",
    # Logging
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    # Metrics
    "ACTIVE_NETWORKS",
    "EVENTS_PUBLISHED",
    "OPERATION_DURATION",
    "OPERATIONS",
]
