"""Prometheus metrics for confirmations, schedule generation and ledger activity"""

from prometheus_client import Counter, Histogram

# Confirmation metrics
confirmation_counter = Counter(
    "agency_billing_confirmations_total",
    "Payment confirmations processed",
    ["outcome"],  # created | updated | failed
)

# Generation metrics
generation_counter = Counter(
    "agency_billing_generation_total",
    "Next-payment generation attempts",
    ["outcome"],  # generated | skipped | failed
)

# Ledger metrics
ledger_mutation_counter = Counter(
    "agency_billing_ledger_mutations_total",
    "Manual ledger mutations",
    ["action"],  # create | update | delete
)

overdue_counter = Counter(
    "agency_billing_payments_marked_overdue_total",
    "Payments moved to overdue by the sweep",
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Payment events webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_confirmation(outcome: str) -> None:
    confirmation_counter.labels(outcome=outcome).inc()


def record_generation(outcome: str) -> None:
    generation_counter.labels(outcome=outcome).inc()
