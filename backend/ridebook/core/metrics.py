"""
Metrics instrumentation for observability.
Prometheus-compatible; registered on the default registry for the embedding
process to expose.
"""

from prometheus_client import Counter, Histogram

# Admission metrics
admission_decisions = Counter(
    'ridebook_admission_decisions_total',
    'Reservation admission decisions',
    ['result']  # admitted, or the rejection error code
)

reservation_latency = Histogram(
    'ridebook_reservation_latency_seconds',
    'Time spent inside the reserve critical section',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

trip_closures = Counter(
    'ridebook_trip_closures_total',
    'Trips transitioned out of OPEN',
    ['state', 'reason']  # closed/cancelled; full, owner
)

# Store metrics
store_operations = Counter(
    'ridebook_store_operations_total',
    'Store operations',
    ['store', 'operation']
)

store_failures = Counter(
    'ridebook_store_failures_total',
    'Store operations that raised StoreFailure',
    ['store', 'operation']
)

# Lock metrics
lock_wait = Histogram(
    'ridebook_trip_lock_wait_seconds',
    'Time spent waiting for a per-trip lock',
    ['backend'],
    buckets=[0.0001, 0.001, 0.01, 0.1, 0.5, 1.0, 5.0]
)

lock_timeouts = Counter(
    'ridebook_trip_lock_timeouts_total',
    'Per-trip lock acquisitions that timed out',
    ['backend']
)


# Convenience functions for instrumentation
def record_admission(result: str):
    """Record admission decision. Result: admitted or an error code."""
    admission_decisions.labels(result=result).inc()

def record_trip_transition(state: str, reason: str):
    trip_closures.labels(state=state, reason=reason).inc()

def record_store_operation(store: str, operation: str):
    store_operations.labels(store=store, operation=operation).inc()

def record_store_failure(store: str, operation: str):
    store_failures.labels(store=store, operation=operation).inc()
