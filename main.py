import asyncio
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from shared.config.database import AsyncSessionLocal, Base, engine
from shared.data_access.unit_of_work import UnitOfWork
from shared.observability import setup_observability

# IMPORTANT: import models so they register with Base
from services.catalog_service.models import Category, Product
from services.company_service.models import Company
from services.user_service import models as user_models  # noqa: F401
from services.cart_service import models as cart_models  # noqa: F401
from services.order_service import models as order_models  # noqa: F401

logger = structlog.get_logger(__name__)

_DESCRIPTION = (
    "Praesent vitae sodales libero. Praesent molestie orci augue, vitae euismod velit "
    "sollicitudin ac. Praesent vestibulum facilisis nibh ut ultricies."
)

# Rows are inserted in list order, so a fresh database numbers them 1..n
SEED_CATEGORIES = [
    {"name": "Action", "display_order": 1},
    {"name": "SciFi", "display_order": 2},
    {"name": "History", "display_order": 3},
]

SEED_COMPANIES = [
    {"name": "TechSolution", "street_address": "123 Tech St", "city": "Tech City",
     "postal_code": "43000", "state": "TC", "phone_number": "23123213"},
    {"name": "VividBooks", "street_address": "456 Book St", "city": "Book City",
     "postal_code": "82320", "state": "BC", "phone_number": "4121213"},
    {"name": "ReadersClub", "street_address": "789 Read St", "city": "Reader City",
     "postal_code": "123000", "state": "RC", "phone_number": "009823213"},
]

# (title, author, isbn, list_price, price, price50, price100, category)
SEED_PRODUCTS = [
    ("Fortune of Time", "Billy Spark", "SWD9999001", 99, 90, 85, 80, "Action"),
    ("Dark Skies", "Nancy Hoover", "CAW777777701", 40, 30, 25, 20, "Action"),
    ("Vanish in the Sunset", "Julian Button", "RITO5555501", 55, 50, 40, 35, "History"),
    ("Cotton Candy", "Abby Muscles", "WS3333333301", 70, 65, 60, 55, "SciFi"),
    ("Rock in the Ocean", "Ron Parker", "SOTJ1111111101", 30, 27, 25, 20, "History"),
    ("Leaves and Wonders", "Laura Phantom", "FOT000000001", 25, 23, 22, 20, "Action"),
]


async def create_tables(db_engine: AsyncEngine = engine):
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def seed_reference_data(session_factory: async_sessionmaker = AsyncSessionLocal) -> bool:
    """Insert the starter catalog and companies. Does nothing once categories exist."""
    async with UnitOfWork(session_factory) as uow:
        if await uow.category.count() > 0:
            return False

        categories = {row["name"]: uow.category.add(Category(**row)) for row in SEED_CATEGORIES}
        for row in SEED_COMPANIES:
            uow.company.add(Company(**row))
        # Categories are flushed first; the relationship fills in category_id
        for title, author, isbn, list_price, price, price50, price100, category in SEED_PRODUCTS:
            uow.product.add(
                Product(
                    title=title,
                    author=author,
                    description=_DESCRIPTION,
                    isbn=isbn,
                    list_price=Decimal(list_price),
                    price=Decimal(price),
                    price50=Decimal(price50),
                    price100=Decimal(price100),
                    category=categories[category],
                    image_url="",
                )
            )
        await uow.save()
    logger.info("seed_data_created", categories=len(SEED_CATEGORIES), products=len(SEED_PRODUCTS))
    return True


async def startup():
    setup_observability("order_management")
    await create_tables()
    await seed_reference_data()


if __name__ == "__main__":
    asyncio.run(startup())
