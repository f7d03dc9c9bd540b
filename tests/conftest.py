import pytest

from main import seed_reference_data
from services.cart_service.schemas import CartItemCreate
from services.cart_service.service import CartService
from services.order_service.lifecycle import OrderLifecycle
from services.order_service.service import OrderService
from services.payment_service.gateway import PaymentOutcome
from services.user_service.schemas import UserCreate
from services.user_service.service import UserService
from shared.config.database import Base, create_engine_from_url, create_session_factory
from shared.data_access.unit_of_work import UnitOfWork
from shared.security import Caller, Role

from fakes import (
    ADMIN,
    COMPANY_BUYER,
    CUSTOMER,
    EMPLOYEE,
    FIXED_NOW,
    OTHER_CUSTOMER,
    FakeGateway,
    RecordingNotificationSender,
)

_ADDRESS = {
    "phone_number": "555-0100",
    "street_address": "12 Harbor Road",
    "city": "Portland",
    "state": "OR",
    "postal_code": "97201",
}


@pytest.fixture
async def engine(tmp_path):
    # File-backed so that separate units of work get separate connections
    engine = create_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def new_uow(session_factory):
    """Factory for fresh units of work, one per logical operation."""
    return lambda: UnitOfWork(session_factory)


@pytest.fixture
async def seeded(session_factory, new_uow):
    await seed_reference_data(session_factory)
    users = [
        UserCreate(id=CUSTOMER.user_id, email="ana@bookstore.com", name="Ana Reyes", **_ADDRESS),
        UserCreate(id=OTHER_CUSTOMER.user_id, email="ben@bookstore.com", name="Ben Okafor", **_ADDRESS),
        UserCreate(
            id=COMPANY_BUYER.user_id,
            email="orders@techsolution.com",
            name="TechSolution Purchasing",
            role=Role.COMPANY,
            company_id=1,
            **_ADDRESS,
        ),
        UserCreate(id=ADMIN.user_id, email="admin@bookstore.com", name="Store Admin", role=Role.ADMIN, **_ADDRESS),
        UserCreate(
            id=EMPLOYEE.user_id, email="staff@bookstore.com", name="Store Staff", role=Role.EMPLOYEE, **_ADDRESS
        ),
    ]
    for data in users:
        async with new_uow() as uow:
            await UserService.register(uow, data)
    return new_uow


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotificationSender()


@pytest.fixture
def order_service(gateway, notifier):
    return OrderService(gateway=gateway, notifier=notifier, lifecycle=OrderLifecycle(clock=lambda: FIXED_NOW))


@pytest.fixture
def place_order(seeded):
    """Fill the caller's cart with (product_id, count) pairs and check out. Returns the order id."""

    async def _place(caller: Caller, *lines: tuple[int, int]) -> int:
        for product_id, count in lines or ((1, 2),):
            async with seeded() as uow:
                await CartService.add_item(uow, caller, CartItemCreate(product_id=product_id, count=count))
        async with seeded() as uow:
            header = await CartService.checkout(uow, caller)
        return header.id

    return _place


@pytest.fixture
def paid_order(place_order, order_service, new_uow):
    """Place an order for the customer and run the payment through the fake gateway."""

    async def _paid(caller: Caller = CUSTOMER, *lines: tuple[int, int]) -> int:
        order_id = await place_order(caller, *lines)
        async with new_uow() as uow:
            token = await order_service.initiate_payment(uow, caller, order_id)
        async with new_uow() as uow:
            await order_service.handle_payment_confirmation(uow, token, PaymentOutcome.SUCCEEDED, "pi_test_1")
        return order_id

    return _paid
