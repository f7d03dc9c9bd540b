from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CartItemCreate(BaseModel):
    product_id: int
    count: int = Field(default=1, ge=1)


class CartLineResponse(BaseModel):
    id: int
    product_id: int
    product_title: str
    count: int
    unit_price: Decimal
    line_total: Decimal


class CartResponse(BaseModel):
    user_id: str
    lines: List[CartLineResponse] = []
    total: Decimal = Decimal("0")


class ShippingDetails(BaseModel):
    """Overrides for the shipping snapshot. Missing fields come from the user profile."""

    name: Optional[str] = None
    phone_number: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
