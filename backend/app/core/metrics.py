"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'class_booking_attempts_total',
    'Total class booking attempts',
    ['outcome']  # confirmed, waitlisted, duplicate, rejected, contention
)

booking_latency = Histogram(
    'class_booking_latency_seconds',
    'Booking decision latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

seat_claim_retries = Counter(
    'seat_claim_retries_total',
    'Seat claim retries caused by version conflicts'
)

seat_releases = Counter(
    'seat_releases_total',
    'Confirmed seats released',
    ['reason']
)

# Waitlist metrics
waitlist_joins = Counter(
    'waitlist_joins_total',
    'Members added to a class waitlist'
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlist promotion attempts',
    ['result']  # promoted, deferred, empty
)

waitlist_expirations = Counter(
    'waitlist_expirations_total',
    'Waitlist entries moved to EXPIRED',
    ['reason']
)

# Attendance metrics
attendance_transitions = Counter(
    'attendance_transitions_total',
    'Attendance state transitions',
    ['from_status', 'to_status']
)

# Notification metrics
notification_failures = Counter(
    'notification_dispatch_failures_total',
    'Member notifications that could not be dispatched',
    ['kind']
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

locked_sessions = Gauge(
    'class_session_locks_held',
    'Per-session write locks currently held in this process'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    booking_attempts.labels(outcome=outcome).inc()


def record_promotion(result: str):
    waitlist_promotions.labels(result=result).inc()


def record_attendance_transition(from_status: str, to_status: str):
    attendance_transitions.labels(from_status=from_status, to_status=to_status).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
