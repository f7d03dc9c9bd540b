from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import relationship

from shared.config.database import Base


class OrderStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    DELAYED_PAYMENT = "ApprovedForDelayedPayment"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    REFUNDED = "Refunded"


def _status_column(enum_cls, default):
    return Column(
        SAEnum(enum_cls, native_enum=False, length=32, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=default,
    )


def _utcnow():
    return datetime.now(timezone.utc)


class OrderHeader(Base):
    __tablename__ = "order_headers"

    id = Column(Integer, primary_key=True, index=True)
    application_user_id = Column(String(64), ForeignKey("application_users.id"), nullable=False, index=True)
    order_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    shipping_date = Column(DateTime(timezone=True), nullable=True)
    order_total = Column(Numeric(12, 2), nullable=False) # fixed at checkout

    order_status = _status_column(OrderStatus, OrderStatus.PENDING)
    payment_status = _status_column(PaymentStatus, PaymentStatus.PENDING)

    tracking_number = Column(String(100), nullable=True)
    carrier = Column(String(100), nullable=True)

    payment_date = Column(DateTime(timezone=True), nullable=True)
    payment_due_date = Column(Date, nullable=True)
    session_id = Column(String(255), nullable=True, index=True) # gateway correlation token
    payment_intent_id = Column(String(255), nullable=True)

    # Refund that failed at the gateway and still has to be retried
    refund_pending = Column(Boolean, nullable=False, default=False)
    last_gateway_error = Column(Text, nullable=True)

    # Shipping snapshot, copied at checkout
    name = Column(String(255), nullable=False)
    phone_number = Column(String(30), nullable=False)
    street_address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=False)

    version = Column(Integer, nullable=False)

    application_user = relationship("ApplicationUser", lazy="noload")
    details = relationship(
        "OrderDetail",
        back_populates="order_header",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderDetail.id",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def correlation_token(self):
        return self.session_id

    def compute_total(self) -> Decimal:
        """Sum of the detail-line snapshots. Live product prices never take part."""
        return sum((detail.line_total for detail in self.details), Decimal("0"))

    def _collect_errors(self, errors):
        if self.order_total is not None and self.order_total < 0:
            errors.setdefault("order_total", []).append("Order total cannot be negative.")
        if self.details and self.order_total is not None and Decimal(self.order_total) != self.compute_total():
            errors.setdefault("order_total", []).append("Order total does not match the order lines.")


class OrderDetail(Base):
    __tablename__ = "order_details"

    id = Column(Integer, primary_key=True, index=True)
    order_header_id = Column(Integer, ForeignKey("order_headers.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    product_title = Column(String(255), nullable=False) # snapshot
    count = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False) # unit price charged, snapshot

    order_header = relationship("OrderHeader", back_populates="details", lazy="noload")
    product = relationship("Product", lazy="noload")

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.count) * Decimal(self.price)

    def _collect_errors(self, errors):
        if self.count is not None and self.count < 1:
            errors.setdefault("count", []).append("Count must be at least 1.")
        if self.price is not None and self.price < 0:
            errors.setdefault("price", []).append("Price cannot be negative.")
