"""Prometheus metrics for payments, ledger rejections, cheques and side channels"""

from prometheus_client import Counter, Histogram

# Ledger metrics
payment_counter = Counter(
    "agency_payments_total",
    "Payments recorded against policies",
    ["method"],  # cash | card | cheque | bank_transfer
)

payment_amount_histogram = Histogram(
    "agency_payment_amount_cents",
    "Distribution of payment amounts",
    buckets=[10_000, 50_000, 100_000, 250_000, 500_000, 1_000_000, 5_000_000],
)

ledger_rejection_counter = Counter(
    "agency_ledger_rejections_total",
    "Ledger mutations rejected by validation",
    ["reason"],  # offending field
)

concurrency_conflict_counter = Counter(
    "agency_concurrency_conflicts_total",
    "Writes rejected because the policy changed since it was read",
)

# Cheque metrics
cheque_transition_counter = Counter(
    "agency_cheque_status_transitions_total",
    "Cheque status changes",
    ["from_status", "to_status"],
)

# Side channels
audit_failure_counter = Counter(
    "agency_audit_failures_total",
    "Audit log writes that failed and were skipped",
)

notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "agency_notification_failures_total",
    "Failed notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(method: str, amount_cents: int) -> None:
    payment_counter.labels(method=method).inc()
    payment_amount_histogram.observe(amount_cents)


def record_rejection(reason: str | None) -> None:
    ledger_rejection_counter.labels(reason=reason or "unknown").inc()


def record_cheque_transition(from_status: str, to_status: str) -> None:
    cheque_transition_counter.labels(from_status=from_status, to_status=to_status).inc()
