"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking lifecycle metrics
booking_mutations = Counter(
    'booking_mutations_total',
    'Booking mutations by operation and outcome',
    ['operation', 'outcome']  # create/edit/transition/cancel x success/<error kind>
)

booking_mutation_latency = Histogram(
    'booking_mutation_latency_seconds',
    'Booking mutation latency including the room lock wait',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Per-room mutual exclusion
room_lock_wait = Histogram(
    'room_lock_wait_seconds',
    'Time spent waiting to acquire per-room locks',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

room_lock_timeouts = Counter(
    'room_lock_timeouts_total',
    'Mutations rejected because a room lock could not be acquired in time'
)

# Audit trail metrics
audit_writes = Counter(
    'audit_writes_total',
    'Audit entries written or lost',
    ['result']  # written, failed, dropped
)

audit_queue_depth = Gauge(
    'audit_queue_depth',
    'Committed mutations waiting to be written to the audit trail'
)

# Database metrics
db_errors = Counter(
    'db_errors_total',
    'Storage failures surfaced as Unavailable',
    ['operation']  # commit, read
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


def record_booking_mutation(operation: str, outcome: str):
    """Record a booking mutation. Outcome: success or the error kind."""
    booking_mutations.labels(operation=operation, outcome=outcome).inc()


def record_audit_write(result: str, count: int = 1):
    """Record audit entries. Result: written, failed, dropped"""
    audit_writes.labels(result=result).inc(count)
