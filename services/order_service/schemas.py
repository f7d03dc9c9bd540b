from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from .models import OrderStatus, PaymentStatus


class ShipmentInfo(BaseModel):
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None


class OrderShippingUpdate(BaseModel):
    """Staff edit of the shipping snapshot. Only provided fields change."""

    name: Optional[str] = None
    phone_number: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None


class OrderDetailResponse(BaseModel):
    id: int
    product_id: int
    product_title: str
    count: int
    price: Decimal

    class Config:
        from_attributes = True


class OrderHeaderResponse(BaseModel):
    id: int
    application_user_id: str
    order_date: datetime
    shipping_date: Optional[datetime]
    order_total: Decimal
    order_status: OrderStatus
    payment_status: PaymentStatus
    tracking_number: Optional[str]
    carrier: Optional[str]
    payment_date: Optional[datetime]
    payment_due_date: Optional[date]
    refund_pending: bool
    name: str
    phone_number: str
    street_address: str
    city: str
    state: str
    postal_code: str
    version: int
    details: List[OrderDetailResponse] = []

    class Config:
        from_attributes = True
