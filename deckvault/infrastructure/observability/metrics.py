"""Prometheus metrics for submissions, credit ledger operations, and HTTP latency"""

from prometheus_client import Counter, Histogram

# Submission metrics
submission_counter = Counter(
    "deckvault_submissions_total",
    "Accepted deck and roast submissions",
    ["submission_type", "status", "tier"],  # status: draft | pending | queued
)

submission_rejection_counter = Counter(
    "deckvault_submission_rejections_total",
    "Rejected deck and roast submissions",
    ["submission_type", "reason"],
)

# Ledger metrics
credit_operation_counter = Counter(
    "deckvault_credit_operations_total",
    "Credit ledger operations by outcome",
    ["credit_type", "operation", "outcome"],
)

refund_failure_counter = Counter(
    "deckvault_refund_failures_total",
    "Credits that could not be refunded after a failed submission write",
    ["credit_type"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_submission(submission_type: str, status: str, tier: str | None) -> None:
    """Record an accepted submission"""
    submission_counter.labels(
        submission_type=submission_type,
        status=status,
        tier=tier or "none",
    ).inc()


def record_rejection(submission_type: str, reason: str) -> None:
    submission_rejection_counter.labels(submission_type=submission_type, reason=reason).inc()


def record_credit_operation(credit_type: str, operation: str, outcome: str) -> None:
    """
    Record a ledger operation.

    operation: refresh | consume | refund | grant
    outcome: applied | noop | insufficient | failed
    """
    credit_operation_counter.labels(
        credit_type=credit_type,
        operation=operation,
        outcome=outcome,
    ).inc()
