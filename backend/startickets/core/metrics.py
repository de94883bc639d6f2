"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Checkout metrics
checkout_attempts = Counter(
    'checkout_attempts_total',
    'Total checkout attempts',
    ['status']  # committed, or the lower-cased error kind
)

checkout_latency = Histogram(
    'checkout_latency_seconds',
    'Checkout transaction latency',
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Inventory ledger metrics
inventory_reservations = Counter(
    'inventory_reservations_total',
    'Ticket category reservation attempts',
    ['result']  # reserved, insufficient, released
)

# Promotion metrics
promotion_evaluations = Counter(
    'promotion_evaluations_total',
    'Promotion code evaluations',
    ['result']  # redeemed, not_applicable, previewed
)

booking_reference_collisions = Counter(
    'booking_reference_collisions_total',
    'Booking reference unique-constraint collisions retried'
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Bookings cancelled by customers'
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


def record_checkout_attempt(status: str):
    """Record checkout outcome. Status: committed or an error kind."""
    checkout_attempts.labels(status=status).inc()


def record_reservation(result: str):
    """Record inventory ledger outcome. Result: reserved, insufficient, released"""
    inventory_reservations.labels(result=result).inc()


def record_promotion(result: str):
    promotion_evaluations.labels(result=result).inc()
