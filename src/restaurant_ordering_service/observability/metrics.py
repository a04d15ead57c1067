"""Custom metrics for the ordering service."""

from opentelemetry import metrics

# Get meter for ordering service
meter = metrics.get_meter("ordering-svc")

auth_rejection_counter = meter.create_counter(
    name="auth_rejection_total",
    description="Total number of requests stopped by authentication or authorization guards",
    unit="1",
)

payment_reconciled_counter = meter.create_counter(
    name="payment_reconciled_total",
    description="Total number of payments recorded with their cart items cleared",
    unit="1",
)

cart_items_cleared_counter = meter.create_counter(
    name="cart_items_cleared_total",
    description="Total number of cart items removed by payment reconciliation",
    unit="1",
)

reconciliation_failure_counter = meter.create_counter(
    name="payment_reconciliation_failure_total",
    description="Total number of reconciliations that failed part-way",
    unit="1",
)

reconciliation_duration_histogram = meter.create_histogram(
    name="payment_reconciliation_duration_seconds",
    description="Duration of payment reconciliation",
    unit="s",
)

report_duration_histogram = meter.create_histogram(
    name="analytics_report_duration_seconds",
    description="Duration of analytics report computation",
    unit="s",
)


def record_auth_rejection(status_code: int) -> None:
    """Record a request rejected by a guard.

    Args:
        status_code: 401 for authentication failures, 403 for authorization failures
    """
    auth_rejection_counter.add(1, {"status_code": status_code})


def record_payment_reconciled(mode: str, cart_item_count: int) -> None:
    """Record a completed reconciliation.

    Args:
        mode: "transaction" or "settlement"
        cart_item_count: Number of cart items cleared
    """
    payment_reconciled_counter.add(1, {"mode": mode})
    cart_items_cleared_counter.add(cart_item_count, {"mode": mode})


def record_reconciliation_failure(mode: str, error_type: str) -> None:
    """Record a reconciliation that failed.

    Args:
        mode: "transaction" or "settlement"
        error_type: Type of error that occurred
    """
    reconciliation_failure_counter.add(1, {"mode": mode, "error_type": error_type})


def record_reconciliation_duration(mode: str, duration_seconds: float) -> None:
    """Record how long a successful reconciliation took.

    Args:
        mode: "transaction" or "settlement"
        duration_seconds: Duration in seconds
    """
    reconciliation_duration_histogram.record(duration_seconds, {"mode": mode})


def record_report_duration(report: str, duration_seconds: float) -> None:
    """Record how long an analytics report took.

    Args:
        report: Report name, e.g. "overview" or "category_breakdown"
        duration_seconds: Duration in seconds
    """
    report_duration_histogram.record(duration_seconds, {"report": report})
