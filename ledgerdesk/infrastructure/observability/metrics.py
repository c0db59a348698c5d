"""Prometheus metrics for schedule activity, change notification and HTTP latency"""

from prometheus_client import Counter, Histogram

# Schedule metrics
mutation_counter = Counter(
    "ledgerdesk_mutation_total",
    "Schedule state transitions requested",
    ["collection", "operation", "outcome"],  # outcome: applied | already_complete | already_empty
)

records_closed_counter = Counter(
    "ledgerdesk_records_closed_total",
    "Schedules that reached their final event",
    ["collection"],
)

# Change notification metrics
webhook_latency_histogram = Histogram(
    "change_webhook_latency_seconds",
    "Change notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "change_webhook_failures_total",
    "Failed change notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_mutation(collection: str, operation: str, outcome: str, just_closed: bool) -> None:
    """Count a mutation, and a closure when this mutation closed the record"""
    mutation_counter.labels(collection=collection, operation=operation, outcome=outcome).inc()

    if just_closed:
        records_closed_counter.labels(collection=collection).inc()
