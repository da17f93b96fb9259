"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram

# Cycle metrics
CYCLES_TOTAL = Counter(
    "usagewatch_cycles_total",
    "Total number of polling cycles",
    ["trigger", "status"],
)

CYCLE_DURATION = Histogram(
    "usagewatch_cycle_duration_seconds",
    "Polling cycle duration in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Threshold metrics
NOTIFICATIONS_FIRED = Counter(
    "usagewatch_notifications_fired_total",
    "Total threshold crossings detected",
    ["threshold"],
)

# Webhook metrics
WEBHOOK_DELIVERIES = Counter(
    "usagewatch_webhook_deliveries_total",
    "Total webhook delivery attempts",
    ["status"],
)

# State metrics
TRACKED_COMPANIES = Gauge(
    "usagewatch_tracked_companies",
    "Number of companies in the notification state store",
)
