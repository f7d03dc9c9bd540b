from .setup import setup_observability, configure_logging
from .metrics import (
    ecomm_checkout_total,
    ecomm_checkout_duration_seconds,
    ecomm_order_transitions_total,
    ecomm_refund_total,
    ecomm_notification_failures_total,
    ecomm_uow_commit_total,
    ecomm_active_carts
)
