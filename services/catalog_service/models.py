from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from shared.config.database import Base
from shared.config.settings import CATEGORY_DISPLAY_ORDER_MAX, CATEGORY_DISPLAY_ORDER_MIN


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(30), nullable=False)
    display_order = Column(Integer, nullable=False)

    products = relationship("Product", back_populates="category", lazy="noload")

    def _collect_errors(self, errors):
        if self.display_order is not None and not (
            CATEGORY_DISPLAY_ORDER_MIN <= self.display_order <= CATEGORY_DISPLAY_ORDER_MAX
        ):
            errors.setdefault("display_order", []).append(
                f"Display Order must be between {CATEGORY_DISPLAY_ORDER_MIN} "
                f"and {CATEGORY_DISPLAY_ORDER_MAX}."
            )
        if self.name and self.display_order is not None and self.name.strip() == str(self.display_order):
            errors.setdefault("name", []).append("The Display Order cannot exactly match the Name.")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    isbn = Column(String(32), unique=True, nullable=False, index=True)
    list_price = Column(Numeric(10, 2), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # 1-49
    price50 = Column(Numeric(10, 2), nullable=False)  # 50-99
    price100 = Column(Numeric(10, 2), nullable=False)  # 100+
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)

    category = relationship("Category", back_populates="products", lazy="noload")

    def _collect_errors(self, errors):
        prices = {
            "list_price": self.list_price,
            "price": self.price,
            "price50": self.price50,
            "price100": self.price100,
        }
        for field, value in prices.items():
            if value is not None and value <= 0:
                errors.setdefault(field, []).append("Price must be greater than zero.")

        if any(value is None for value in prices.values()):
            return
        # Volume discounts only ever go down
        if not (self.price100 <= self.price50 <= self.price <= self.list_price):
            errors.setdefault("price", []).append(
                "Price tiers must satisfy Price100 <= Price50 <= Price <= ListPrice."
            )
