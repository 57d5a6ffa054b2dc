"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'unihub_booking_attempts_total',
    'Total booking attempts',
    ['status']  # success, capacity_exceeded, not_found
)

booking_transitions = Counter(
    'unihub_booking_transitions_total',
    'Booking status transitions',
    ['transition']  # approved, rejected, deleted, already_decided
)

# Seat ledger metrics
ledger_operations = Counter(
    'unihub_seat_ledger_operations_total',
    'Seat ledger operations',
    ['operation', 'result']  # reserve/release/resize, ok/insufficient/not_found
)

ledger_seats_moved = Counter(
    'unihub_seat_ledger_seats_total',
    'Seats moved through the ledger',
    ['direction']  # reserved, released
)

booking_latency = Histogram(
    'unihub_booking_latency_seconds',
    'Booking creation latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Token lifecycle metrics
token_events = Counter(
    'unihub_token_events_total',
    'Verification and reset code lifecycle events',
    ['kind', 'result']  # verification/reset, issued/redeemed/invalid/expired/...
)

# Notifier metrics
notifications_sent = Counter(
    'unihub_notifications_total',
    'Outgoing notifications',
    ['template', 'result']  # ok, failure
)

# Cache metrics
cache_operations = Counter(
    'unihub_cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

store_errors = Counter(
    'unihub_store_transient_errors_total',
    'Transient storage errors surfaced to callers'
)


def metrics_endpoint() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    booking_attempts.labels(status=status).inc()


def record_transition(transition: str):
    booking_transitions.labels(transition=transition).inc()


def record_ledger(operation: str, result: str, seats: int = 0):
    ledger_operations.labels(operation=operation, result=result).inc()
    if seats and result == "ok":
        direction = "reserved" if operation == "reserve" else "released"
        ledger_seats_moved.labels(direction=direction).inc(seats)


def record_token(kind: str, result: str):
    token_events.labels(kind=kind, result=result).inc()


def record_notification(template: str, ok: bool):
    notifications_sent.labels(template=template, result="ok" if ok else "failure").inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
