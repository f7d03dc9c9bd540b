"""
Order lifecycle engine.

Order and payment status are two small state machines on the same header:

    OrderStatus:   Pending -> Approved -> Processing -> Shipped
                   Pending/Approved/Processing -> Cancelled -> Refunded
                   Pending/Approved/Processing -> Refunded   (refund issued during cancel)
    PaymentStatus: Pending -> Approved | Rejected;  Rejected -> Pending (retry)
                   ApprovedForDelayedPayment -> Approved (a failed charge keeps it)
                   Approved -> Refunded

Every method validates first and only then mutates the tracked header, so a
rejected transition leaves it untouched. Nothing here does I/O; the order
service persists through the unit of work and talks to the gateway.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from services.notification_service.sender import OrderStatusChanged
from services.payment_service.gateway import PaymentOutcome
from shared.config.settings import NET_TERMS_DAYS
from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    MissingShipmentInfoError,
)
from shared.security import STAFF_ROLES, Caller, Role, require_role

from .models import OrderHeader, OrderStatus, PaymentStatus

_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.APPROVED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.APPROVED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: set(),  # Terminal
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_VALID_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.APPROVED, PaymentStatus.REJECTED},
    PaymentStatus.REJECTED: {PaymentStatus.PENDING},
    PaymentStatus.DELAYED_PAYMENT: {PaymentStatus.APPROVED},
    PaymentStatus.APPROVED: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),  # Terminal
}

CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.PROCESSING}

# Payment states that let staff approve an order
CONFIRMED_PAYMENT_STATES = {PaymentStatus.APPROVED, PaymentStatus.DELAYED_PAYMENT}

# Payment states a charge may be (re)started from
CHARGEABLE_PAYMENT_STATES = {PaymentStatus.PENDING, PaymentStatus.REJECTED, PaymentStatus.DELAYED_PAYMENT}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycle:
    def __init__(self, clock: Callable[[], datetime] = _utcnow, net_terms_days: int = NET_TERMS_DAYS):
        self.clock = clock
        self.net_terms_days = net_terms_days

    # --- GUARDS ---

    @staticmethod
    def check_version(header: OrderHeader, expected_version: Optional[int]) -> None:
        if expected_version is not None and header.version != expected_version:
            raise ConflictError(
                f"Order {header.id} is at version {header.version}, caller read {expected_version}",
                {"order_id": header.id, "version": header.version, "expected_version": expected_version},
            )

    @staticmethod
    def _assert_can_transition(header: OrderHeader, target: OrderStatus) -> None:
        current = header.order_status
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot transition order {header.id} from {current.value} to {target.value}",
                {"order_id": header.id, "from": current.value, "to": target.value},
            )

    @staticmethod
    def _assert_can_transition_payment(header: OrderHeader, target: PaymentStatus) -> None:
        current = header.payment_status
        if target not in _VALID_PAYMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Cannot move payment of order {header.id} from {current.value} to {target.value}",
                {"order_id": header.id, "from": current.value, "to": target.value},
            )

    # --- STAFF TRANSITIONS ---

    def approve(self, header: OrderHeader, caller: Caller) -> OrderStatusChanged:
        require_role(caller, *STAFF_ROLES)
        self._assert_can_transition(header, OrderStatus.APPROVED)
        if header.payment_status not in CONFIRMED_PAYMENT_STATES:
            raise InvalidTransitionError(
                f"Order {header.id} cannot be approved before payment is confirmed",
                {"order_id": header.id, "payment_status": header.payment_status.value},
            )
        return self._apply(header, "approve", order_status=OrderStatus.APPROVED)

    def start_processing(self, header: OrderHeader, caller: Caller) -> OrderStatusChanged:
        require_role(caller, *STAFF_ROLES)
        self._assert_can_transition(header, OrderStatus.PROCESSING)
        return self._apply(header, "start_processing", order_status=OrderStatus.PROCESSING)

    def ship(
        self,
        header: OrderHeader,
        caller: Caller,
        tracking_number: Optional[str] = None,
        carrier: Optional[str] = None,
    ) -> OrderStatusChanged:
        require_role(caller, *STAFF_ROLES)
        self._assert_can_transition(header, OrderStatus.SHIPPED)

        tracking_number = (tracking_number or header.tracking_number or "").strip()
        carrier = (carrier or header.carrier or "").strip()
        missing = [name for name, value in (("tracking_number", tracking_number), ("carrier", carrier)) if not value]
        if missing:
            raise MissingShipmentInfoError(
                f"Order {header.id} cannot ship without {' and '.join(missing)}",
                {"order_id": header.id, "missing": missing},
            )

        now = self.clock()
        header.tracking_number = tracking_number
        header.carrier = carrier
        header.shipping_date = now
        if header.payment_status == PaymentStatus.DELAYED_PAYMENT:
            header.payment_due_date = (now + timedelta(days=self.net_terms_days)).date()
        return self._apply(header, "ship", order_status=OrderStatus.SHIPPED)

    # --- CANCELLATION ---

    def check_cancel(self, header: OrderHeader, caller: Caller) -> bool:
        """Validate a cancellation request. Returns True when a refund must be issued first.

        A cancelled order whose refund failed earlier can be cancelled again;
        that retries the refund.
        """
        is_owner = caller.user_id == header.application_user_id
        if not (caller.has_role(Role.ADMIN) or is_owner):
            raise AuthorizationError(
                f"Caller {caller.user_id} may not cancel order {header.id}",
                {"order_id": header.id, "user_id": caller.user_id},
            )

        if header.order_status == OrderStatus.CANCELLED and header.refund_pending:
            return True

        if header.order_status not in CANCELLABLE_STATES:
            raise InvalidTransitionError(
                f"Order {header.id} is {header.order_status.value} and can no longer be cancelled",
                {"order_id": header.id, "from": header.order_status.value},
            )
        if not caller.has_role(Role.ADMIN) and header.order_status != OrderStatus.PENDING:
            raise InvalidTransitionError(
                f"Order {header.id} can only be cancelled by its owner while Pending",
                {"order_id": header.id, "from": header.order_status.value},
            )
        return header.payment_status == PaymentStatus.APPROVED

    def apply_cancel(self, header: OrderHeader, refunded: bool) -> OrderStatusChanged:
        if refunded:
            self._assert_can_transition(header, OrderStatus.REFUNDED)
            self._assert_can_transition_payment(header, PaymentStatus.REFUNDED)
            header.refund_pending = False
            header.last_gateway_error = None
            return self._apply(
                header, "refund", order_status=OrderStatus.REFUNDED, payment_status=PaymentStatus.REFUNDED
            )
        self._assert_can_transition(header, OrderStatus.CANCELLED)
        return self._apply(header, "cancel", order_status=OrderStatus.CANCELLED)

    def record_refund_failure(self, header: OrderHeader, error: str) -> Optional[OrderStatusChanged]:
        """Keep the cancellation but remember the refund still owed."""
        header.refund_pending = True
        header.last_gateway_error = error
        if header.order_status == OrderStatus.CANCELLED:
            return None
        self._assert_can_transition(header, OrderStatus.CANCELLED)
        return self._apply(header, "cancel_refund_pending", order_status=OrderStatus.CANCELLED)

    @staticmethod
    def record_charge_failure(header: OrderHeader, error: str) -> None:
        header.last_gateway_error = error

    # --- PAYMENT ---

    def begin_payment(self, header: OrderHeader) -> Optional[OrderStatusChanged]:
        """Validate that a charge may be started; a rejected payment goes back to Pending."""
        if header.payment_status not in CHARGEABLE_PAYMENT_STATES:
            raise InvalidTransitionError(
                f"Payment of order {header.id} is {header.payment_status.value}; nothing to charge",
                {"order_id": header.id, "payment_status": header.payment_status.value},
            )
        if header.order_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise InvalidTransitionError(
                f"Order {header.id} is {header.order_status.value}; it cannot be paid",
                {"order_id": header.id, "from": header.order_status.value},
            )
        if header.payment_status == PaymentStatus.REJECTED:
            return self._apply(header, "payment_retry", payment_status=PaymentStatus.PENDING)
        return None

    def apply_payment_outcome(
        self, header: OrderHeader, outcome: PaymentOutcome, failure_reason: Optional[str] = None
    ) -> Optional[OrderStatusChanged]:
        """Apply a gateway confirmation. Returns None when the statuses stay as they are.

        That covers duplicate deliveries and a failed charge on a net-terms
        order, which is recorded in `last_gateway_error` instead.
        """
        if outcome == PaymentOutcome.SUCCEEDED:
            if header.payment_status in (PaymentStatus.APPROVED, PaymentStatus.REFUNDED):
                return None
            self._assert_can_transition_payment(header, PaymentStatus.APPROVED)
            header.payment_date = self.clock()
            if header.order_status == OrderStatus.CANCELLED:
                # Money arrived for an order that no longer exists; owe it back
                header.refund_pending = True
                header.last_gateway_error = "Payment captured after cancellation"
            # Payment success replaces the manual approval step
            if header.order_status == OrderStatus.PENDING:
                return self._apply(
                    header,
                    "payment_approved",
                    order_status=OrderStatus.APPROVED,
                    payment_status=PaymentStatus.APPROVED,
                )
            return self._apply(header, "payment_approved", payment_status=PaymentStatus.APPROVED)

        if header.payment_status == PaymentStatus.REJECTED:
            return None
        if header.payment_status == PaymentStatus.DELAYED_PAYMENT:
            # The net-terms invoice still stands; only the early charge failed
            header.last_gateway_error = failure_reason or "Charge failed; net terms still apply"
            return None
        self._assert_can_transition_payment(header, PaymentStatus.REJECTED)
        return self._apply(header, "payment_rejected", payment_status=PaymentStatus.REJECTED)

    # --- MUTATION ---

    @staticmethod
    def _apply(
        header: OrderHeader,
        transition: str,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
    ) -> OrderStatusChanged:
        old_order, old_payment = header.order_status, header.payment_status
        if order_status is not None:
            header.order_status = order_status
        if payment_status is not None:
            header.payment_status = payment_status
        return OrderStatusChanged(
            order_id=header.id,
            user_id=header.application_user_id,
            transition=transition,
            old_order_status=old_order.value,
            new_order_status=header.order_status.value,
            old_payment_status=old_payment.value,
            new_payment_status=header.payment_status.value,
        )
