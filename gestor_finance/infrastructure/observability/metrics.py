"""Prometheus metrics for installment, balance, stock and notification activity"""

from prometheus_client import Counter, Histogram

# Installment metrics
installments_created_counter = Counter(
    "gestor_installments_created_total",
    "Installments persisted by plan creation or recalculation",
)

installment_payments_counter = Counter(
    "gestor_installment_payments_total",
    "Installments marked as paid",
)

plan_recalculation_counter = Counter(
    "gestor_plan_recalculations_total",
    "Installment plan updates by outcome",
    ["outcome"],  # replaced | settled | purged | declined | rejected
)

# Balance metrics
balance_adjustment_counter = Counter(
    "gestor_balance_adjustments_total",
    "Manual balance adjustments",
    ["direction"],  # add | subtract | set
)

# Stock metrics
stock_movement_counter = Counter(
    "gestor_stock_movements_total",
    "Recorded stock movements",
    ["movement_type"],  # in | out | adjustment
)

# Notification metrics
notification_counter = Counter(
    "gestor_notifications_total",
    "User notifications emitted",
    ["outcome"],  # success | error
)

webhook_latency_histogram = Histogram(
    "gestor_webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "gestor_webhook_failures_total",
    "Failed notification webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "gestor_http_request_duration_seconds",
    "HTTP request latency by route template",
    ["method", "route", "status"],
)


def record_plan_outcome(outcome: str) -> None:
    plan_recalculation_counter.labels(outcome=outcome).inc()
