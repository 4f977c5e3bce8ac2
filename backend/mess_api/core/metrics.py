"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking lifecycle
booking_transitions = Counter(
    'mess_booking_transitions_total',
    'Booking lifecycle transitions',
    ['transition', 'result']  # created/cancelled/checked_in/rated, success/conflict
)

checkin_scans = Counter(
    'mess_checkin_scans_total',
    'QR check-in scans by outcome',
    ['outcome']  # success, malformed, not_found, already_checked_in, cancelled
)

# Voting ledger
votes_cast = Counter(
    'mess_votes_total',
    'Votes processed',
    ['outcome']  # created, changed, unchanged
)

vote_write_retries = Counter(
    'mess_vote_write_retries_total',
    'Vote writes retried after losing a uniqueness or compare-and-swap race'
)

# Points ledger
points_applied = Counter(
    'mess_points_applied_total',
    'Point deltas applied to users',
    ['reason']
)

# AI collaborators
ai_requests = Counter(
    'mess_ai_requests_total',
    'Requests to the AI advice service',
    ['outcome']  # success, rate_limited, error
)

ai_latency = Histogram(
    'mess_ai_request_latency_seconds',
    'AI advice request latency including retries',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Cache
cache_operations = Counter(
    'mess_cache_operations_total',
    'Weekly menu cache operations',
    ['operation', 'result']  # get/set/invalidate, hit/miss/error/ok
)


def metrics_endpoint() -> Response:
    """Prometheus metrics in the text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_transition(transition: str, success: bool):
    booking_transitions.labels(
        transition=transition, result="success" if success else "conflict"
    ).inc()


def record_checkin(outcome: str):
    checkin_scans.labels(outcome=outcome).inc()


def record_vote(outcome: str):
    votes_cast.labels(outcome=outcome).inc()


def record_points(reason: str):
    points_applied.labels(reason=reason).inc()


def record_ai_request(outcome: str):
    ai_requests.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, result: str):
    cache_operations.labels(operation=operation, result=result).inc()
