from prometheus_client import Counter, Histogram, Gauge

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total checkouts processed",
    ["status"] # Labels: 'success', 'empty_cart', 'failed'
)

ecomm_checkout_duration_seconds = Histogram(
    "ecomm_checkout_duration_seconds",
    "Checkout duration in seconds"
)

ecomm_order_transitions_total = Counter(
    "ecomm_order_transitions_total",
    "Order lifecycle transitions applied",
    ["transition"] # Labels: 'approve', 'start_processing', 'ship', 'cancel', ...
)

ecomm_refund_total = Counter(
    "ecomm_refund_total",
    "Refund attempts against the payment gateway",
    ["outcome"] # Labels: 'succeeded', 'failed'
)

ecomm_notification_failures_total = Counter(
    "ecomm_notification_failures_total",
    "Order status notifications that could not be delivered"
)

ecomm_uow_commit_total = Counter(
    "ecomm_uow_commit_total",
    "Unit of work commits",
    ["outcome"] # Labels: 'committed', 'invalid', 'conflict', 'failed'
)

ecomm_active_carts = Gauge(
    "ecomm_active_carts",
    "Number of carts that became non-empty minus carts consumed by checkout"
)
