"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, rejected, conflict, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking transaction latency (admission to commit)',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Rate limiter metrics
admission_requests = Counter(
    'admission_requests_total',
    'Total rate limiter decisions',
    ['result']  # admitted, rejected
)

# Inventory metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Inventory CAS retries due to version conflicts'
)

bookings_cancelled = Counter(
    'bookings_cancelled_total',
    'Bookings cancelled by the event retirement cascade'
)

# Location lookups
geocode_requests = Counter(
    'geocode_requests_total',
    'Reverse geocoding lookups',
    ['result']  # resolved, fallback, disabled
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


def record_booking_attempt(status: str):
    """Record booking attempt. Status: success, rejected, conflict, error"""
    booking_attempts.labels(status=status).inc()


def record_admission(admitted: bool):
    """Record rate limiter decision."""
    result = "admitted" if admitted else "rejected"
    admission_requests.labels(result=result).inc()


def record_db_retry():
    db_retries.inc()


def record_cancellations(count: int):
    if count:
        bookings_cancelled.inc(count)


def record_geocode(result: str):
    geocode_requests.labels(result=result).inc()
