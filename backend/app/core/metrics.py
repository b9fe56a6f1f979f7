"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Webhook metrics
payment_webhooks = Counter(
    'payment_webhooks_total',
    'Payment processor notifications by terminal outcome',
    ['outcome']  # updated, no_target, malformed, forged, secret_missing, store_unavailable, store_error
)

payment_webhook_latency = Histogram(
    'payment_webhook_latency_seconds',
    'Payment notification handling latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

# Booking metrics
registrations = Counter(
    'registrations_total',
    'Registration lifecycle events',
    ['result']  # created_pending, created_paid, cancelled, deleted_by_admin
)

payment_links = Counter(
    'payment_links_total',
    'Checkout redirect URLs issued'
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


def record_webhook_outcome(outcome: str, duration_seconds: float):
    """Record a processed notification and how long it took."""
    payment_webhooks.labels(outcome=outcome).inc()
    payment_webhook_latency.observe(duration_seconds)

def record_registration(result: str):
    """Result: created_pending, created_paid, cancelled, deleted_by_admin"""
    registrations.labels(result=result).inc()

def record_payment_link():
    payment_links.inc()
