from decimal import Decimal

from services.catalog_service.models import Product
from shared.config.settings import PRICE_TIER_50_MIN_COUNT, PRICE_TIER_100_MIN_COUNT
from shared.exceptions import ValidationError


def resolve_unit_price(product: Product, count: int) -> Decimal:
    """Unit price for buying `count` copies: Price, Price50 or Price100."""
    if count < 1:
        raise ValidationError({"count": ["Count must be at least 1."]})
    if count >= PRICE_TIER_100_MIN_COUNT:
        return Decimal(product.price100)
    if count >= PRICE_TIER_50_MIN_COUNT:
        return Decimal(product.price50)
    return Decimal(product.price)
