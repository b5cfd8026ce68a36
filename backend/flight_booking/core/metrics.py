"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total reservation attempts by outcome',
    ['operation', 'outcome']  # outcome: confirmed, cancelled, changed or an error code
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Reservation coordinator latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Seat inventory metrics
seat_claim_retries = Counter(
    'seat_claim_retries_total',
    'Auto-pick attempts that lost the candidate seat to another transaction'
)

seat_transitions = Counter(
    'seat_transitions_total',
    'Seat state transitions',
    ['transition']  # claim, release, block, unblock
)

# Payment metrics
payments_processed = Counter(
    'payments_processed_total',
    'Payments by outcome',
    ['status']  # SUCCESS, INVALID_CARD, INVALID_AMOUNT, ...
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(operation: str, outcome: str):
    """Record a coordinator outcome. Outcome: a success label or an error code."""
    booking_attempts.labels(operation=operation, outcome=outcome).inc()


def record_seat_transition(transition: str, count: int = 1):
    if count:
        seat_transitions.labels(transition=transition).inc(count)


def record_payment(status: str):
    payments_processed.labels(status=status).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
