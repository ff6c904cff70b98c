"""Prometheus metrics for netreg.

Metrics:
- netreg_operations_total: Counter of registry operations by operation and status
- netreg_events_published_total: Counter of network events by type and status
- netreg_active_networks: Gauge of networks returned by the last active listing
- netreg_operation_duration_seconds: Histogram of registry operation duration
"""

from prometheus_client import Counter, Gauge, Histogram

# Counters
OPERATIONS = Counter(
    "netreg_operations_total",
    "Total number of registry operations",
    ["operation", "status"],
)

EVENTS_PUBLISHED = Counter(
    "netreg_events_published_total",
    "Total network events handed to the publisher",
    ["event_type", "status"],
)

# Gauges
ACTIVE_NETWORKS = Gauge(
    "netreg_active_networks",
    "Number of active networks seen by the last listing",
)

# Histograms
OPERATION_DURATION = Histogram(
    "netreg_operation_duration_seconds",
    "Registry operation duration",
    ["operation"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
