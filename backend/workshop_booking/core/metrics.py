"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_operations = Counter(
    'booking_operations_total',
    'Booking lifecycle operations',
    ['operation', 'result']  # create/edit/cancel/payment, success/<error code>
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking lifecycle operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

occupancy_recounts = Counter(
    'occupancy_recounts_total',
    'Occupancy recounts written to activities'
)

# Push metrics
push_deliveries = Counter(
    'push_deliveries_total',
    'Web push delivery attempts',
    ['result']  # sent, failed, expired
)

push_subscriptions_pruned = Counter(
    'push_subscriptions_pruned_total',
    'Subscriptions removed after the push service reported them gone'
)

# Live channel metrics
live_connections = Gauge(
    'live_channel_connections',
    'Currently connected live channel clients'
)

live_events_published = Counter(
    'live_events_published_total',
    'Events published on the live channel',
    ['event']
)

notification_errors = Counter(
    'notification_errors_total',
    'Notification fan-out failures isolated from the triggering operation',
    ['stage']  # live, push
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set/invalidate; hit/miss/ok
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_operation(operation: str, result: str):
    """Record booking operation. Result: success or a domain error code."""
    booking_operations.labels(operation=operation, result=result).inc()


def record_push_delivery(result: str):
    """Record push delivery. Result: sent, failed, expired"""
    push_deliveries.labels(result=result).inc()


def record_cache_operation(operation: str, result: str):
    """result is hit or miss for reads, ok for writes."""
    cache_operations.labels(operation=operation, result=result).inc()
