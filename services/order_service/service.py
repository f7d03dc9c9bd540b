"""
Order management operations.

Each public method is one logical operation: load through the unit of work,
let the lifecycle engine validate and stage the change, save once, then send
the status notification. Notifications go out only after a successful commit.
"""
from typing import Optional

import structlog
from opentelemetry import trace

from services.notification_service.sender import (
    NotificationSender,
    OrderStatusChanged,
    build_notification_sender,
    notify_best_effort,
)
from services.payment_service.gateway import (
    HttpPaymentGateway,
    PaymentGateway,
    PaymentOutcome,
    refund_idempotency_key,
)
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import GatewayError, InvalidTransitionError, NotFoundError
from shared.observability import ecomm_order_transitions_total, ecomm_refund_total
from shared.security import STAFF_ROLES, Caller, require_role

from .lifecycle import OrderLifecycle
from .models import OrderDetail, OrderHeader, OrderStatus, PaymentStatus
from .schemas import OrderShippingUpdate, ShipmentInfo

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

# Admin list filters, keyed by the status keyword the order pages use
STATUS_FILTERS = {
    "pending": OrderHeader.payment_status == PaymentStatus.DELAYED_PAYMENT,
    "inprocess": OrderHeader.order_status == OrderStatus.PROCESSING,
    "completed": OrderHeader.order_status == OrderStatus.SHIPPED,
    "approved": OrderHeader.order_status == OrderStatus.APPROVED,
}

SHIPPING_SNAPSHOT_FIELDS = ("name", "phone_number", "street_address", "city", "state", "postal_code")


class OrderService:
    def __init__(
        self,
        gateway: Optional[PaymentGateway] = None,
        notifier: Optional[NotificationSender] = None,
        lifecycle: Optional[OrderLifecycle] = None,
    ):
        self.gateway = gateway or HttpPaymentGateway()
        self.notifier = notifier or build_notification_sender()
        self.lifecycle = lifecycle or OrderLifecycle()

    # --- QUERIES ---

    async def get_order(self, uow: UnitOfWork, caller: Caller, order_id: int) -> OrderHeader:
        """Header with its user, lines with their products. Customers only see their own orders."""
        header = await uow.order_header.get_by_id(
            order_id,
            include=[OrderHeader.application_user, (OrderHeader.details, OrderDetail.product)],
        )
        if not header or not (caller.is_staff or header.application_user_id == caller.user_id):
            raise NotFoundError("OrderHeader", order_id)
        return header

    async def list_orders(self, uow: UnitOfWork, caller: Caller, status: Optional[str] = None) -> list[OrderHeader]:
        condition = STATUS_FILTERS.get((status or "").lower())
        if not caller.is_staff:
            own = OrderHeader.application_user_id == caller.user_id
            condition = own if condition is None else condition & own
        orders = await uow.order_header.get_all(condition, include=[OrderHeader.application_user])
        return sorted(orders, key=lambda order: order.id)

    # --- STAFF EDITS ---

    async def update_shipping_details(
        self,
        uow: UnitOfWork,
        caller: Caller,
        order_id: int,
        data: OrderShippingUpdate,
        expected_version: Optional[int] = None,
    ) -> OrderHeader:
        require_role(caller, *STAFF_ROLES)
        header = await self._load(uow, order_id)
        self.lifecycle.check_version(header, expected_version)

        changes = data.model_dump(exclude_none=True)
        for field in SHIPPING_SNAPSHOT_FIELDS:
            if field in changes:
                setattr(header, field, changes[field])
        # Blank carrier/tracking input keeps what is already on the order
        if changes.get("carrier"):
            header.carrier = changes["carrier"]
        if changes.get("tracking_number"):
            header.tracking_number = changes["tracking_number"]

        await uow.order_header.update(header)
        await uow.save()
        logger.info("order_details_updated", order_id=order_id, fields=sorted(changes))
        return header

    # --- LIFECYCLE ---

    async def approve_order(
        self, uow: UnitOfWork, caller: Caller, order_id: int, expected_version: Optional[int] = None
    ) -> OrderHeader:
        return await self._transition(
            uow, order_id, expected_version, lambda header: self.lifecycle.approve(header, caller)
        )

    async def start_processing(
        self, uow: UnitOfWork, caller: Caller, order_id: int, expected_version: Optional[int] = None
    ) -> OrderHeader:
        return await self._transition(
            uow, order_id, expected_version, lambda header: self.lifecycle.start_processing(header, caller)
        )

    async def ship_order(
        self,
        uow: UnitOfWork,
        caller: Caller,
        order_id: int,
        shipment: ShipmentInfo,
        expected_version: Optional[int] = None,
    ) -> OrderHeader:
        return await self._transition(
            uow,
            order_id,
            expected_version,
            lambda header: self.lifecycle.ship(header, caller, shipment.tracking_number, shipment.carrier),
        )

    async def cancel_order(
        self, uow: UnitOfWork, caller: Caller, order_id: int, expected_version: Optional[int] = None
    ) -> OrderHeader:
        """Cancel an order, refunding it first when the payment was captured.

        If the refund fails the order is still cancelled, the owed refund is
        recorded on it and GatewayError is raised. Cancelling again (or
        `retry_refund`) repeats the refund with the same idempotency key.
        """
        with tracer.start_as_current_span("order.cancel"):
            header = await self._load(uow, order_id)
            self.lifecycle.check_version(header, expected_version)
            needs_refund = self.lifecycle.check_cancel(header, caller)
            return await self._cancel(uow, header, needs_refund)

    async def retry_refund(
        self, uow: UnitOfWork, caller: Caller, order_id: int, expected_version: Optional[int] = None
    ) -> OrderHeader:
        require_role(caller, *STAFF_ROLES)
        header = await self._load(uow, order_id)
        self.lifecycle.check_version(header, expected_version)
        if not header.refund_pending:
            raise InvalidTransitionError(
                f"Order {order_id} has no refund waiting to be retried", {"order_id": order_id}
            )
        return await self._cancel(uow, header, needs_refund=True)

    # --- PAYMENT ---

    async def initiate_payment(self, uow: UnitOfWork, caller: Caller, order_id: int) -> str:
        """Start a gateway charge for the order total and return the correlation token."""
        header = await self._load(uow, order_id)
        if not (caller.is_staff or header.application_user_id == caller.user_id):
            raise NotFoundError("OrderHeader", order_id)

        change = self.lifecycle.begin_payment(header)
        try:
            token = await self.gateway.initiate_charge(header.id, header.order_total)
        except GatewayError as e:
            self.lifecycle.record_charge_failure(header, str(e))
            await uow.save()
            logger.warning("payment_initiation_failed", order_id=header.id, error=str(e))
            if change:
                await self._after_commit(change)
            raise
        uow.order_header.update_payment_ids(header, session_id=token)
        await uow.save()

        logger.info("payment_initiated", order_id=header.id, amount=str(header.order_total))
        if change:
            await self._after_commit(change)
        return token

    async def handle_payment_confirmation(
        self,
        uow: UnitOfWork,
        correlation_token: str,
        outcome: PaymentOutcome,
        payment_intent_id: Optional[str] = None,
        failure_reason: Optional[str] = None,
    ) -> OrderHeader:
        """Gateway webhook: record the charge outcome. Duplicate deliveries change nothing."""
        header = await uow.order_header.get_by_correlation_token(correlation_token)
        if not header:
            raise NotFoundError("OrderHeader", correlation_token)

        change = self.lifecycle.apply_payment_outcome(header, outcome, failure_reason)
        if change is None:
            # Statuses unchanged; a failed net-terms charge still leaves its error to keep
            await uow.save()
            logger.info("payment_confirmation_ignored", order_id=header.id, outcome=outcome.value)
            return header

        if outcome == PaymentOutcome.SUCCEEDED:
            uow.order_header.update_payment_ids(header, session_id=correlation_token, payment_intent_id=payment_intent_id)
        await uow.save()
        await self._after_commit(change)
        return header

    # --- INTERNALS ---

    async def _load(self, uow: UnitOfWork, order_id: int) -> OrderHeader:
        header = await uow.order_header.get_by_id(order_id)
        if not header:
            raise NotFoundError("OrderHeader", order_id)
        return header

    async def _transition(self, uow: UnitOfWork, order_id: int, expected_version, apply) -> OrderHeader:
        header = await self._load(uow, order_id)
        self.lifecycle.check_version(header, expected_version)
        with tracer.start_as_current_span("order.transition"):
            change = apply(header)
            await uow.save()
        await self._after_commit(change)
        return header

    async def _cancel(self, uow: UnitOfWork, header: OrderHeader, needs_refund: bool) -> OrderHeader:
        if needs_refund:
            try:
                await self._refund(header)
            except GatewayError as e:
                change = self.lifecycle.record_refund_failure(header, str(e))
                await uow.save()
                if change:
                    await self._after_commit(change)
                raise
        change = self.lifecycle.apply_cancel(header, refunded=needs_refund)
        await uow.save()
        await self._after_commit(change)
        return header

    async def _refund(self, header: OrderHeader) -> None:
        token = header.correlation_token
        if not token:
            raise GatewayError(f"Order {header.id} has no payment to refund", {"order_id": header.id})

        try:
            result = await self.gateway.refund(token, header.order_total, refund_idempotency_key(token))
        except GatewayError:
            ecomm_refund_total.labels(outcome="failed").inc()
            raise
        if not result.success:
            ecomm_refund_total.labels(outcome="failed").inc()
            raise GatewayError(
                f"Refund for order {header.id} was declined: {result.failure_reason}",
                {"order_id": header.id, "reason": result.failure_reason},
            )
        ecomm_refund_total.labels(outcome="succeeded").inc()
        logger.info("refund_issued", order_id=header.id, refund_id=result.refund_id)

    async def _after_commit(self, change: OrderStatusChanged) -> None:
        ecomm_order_transitions_total.labels(transition=change.transition).inc()
        logger.info(
            "order_transition",
            order_id=change.order_id,
            transition=change.transition,
            order_status=change.new_order_status,
            payment_status=change.new_payment_status,
        )
        await notify_best_effort(self.notifier, change)
