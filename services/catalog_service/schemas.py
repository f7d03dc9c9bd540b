from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(max_length=30)
    display_order: int


class CategoryResponse(BaseModel):
    id: int
    name: str
    display_order: int

    class Config:
        from_attributes = True


class ProductUpsert(BaseModel):
    id: Optional[int] = None # None creates, an id replaces that product
    title: str
    author: str
    description: Optional[str] = None
    isbn: str
    list_price: Decimal = Field(gt=0)
    price: Decimal = Field(gt=0)
    price50: Decimal = Field(gt=0)
    price100: Decimal = Field(gt=0)
    category_id: int
    image_url: Optional[str] = None


class ProductResponse(BaseModel):
    id: int
    title: str
    author: str
    description: Optional[str]
    isbn: str
    list_price: Decimal
    price: Decimal
    price50: Decimal
    price100: Decimal
    category_id: int
    image_url: Optional[str]
    category: Optional[CategoryResponse] = None

    class Config:
        from_attributes = True
