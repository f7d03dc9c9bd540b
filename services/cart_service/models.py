from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from shared.config.database import Base


class ShoppingCart(Base):
    __tablename__ = "shopping_carts"
    # One row per (user, product); adding the same product again bumps count
    __table_args__ = (
        UniqueConstraint("application_user_id", "product_id", name="uq_cart_user_product"),
    )

    id = Column(Integer, primary_key=True, index=True)
    application_user_id = Column(
        String(64), ForeignKey("application_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    count = Column(Integer, nullable=False)

    application_user = relationship("ApplicationUser", lazy="noload")
    product = relationship("Product", lazy="noload")

    def _collect_errors(self, errors):
        if self.count is not None and self.count < 1:
            errors.setdefault("count", []).append("Count must be at least 1.")
