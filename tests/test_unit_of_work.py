from decimal import Decimal

import pytest

from services.catalog_service.models import Category, Product
from services.order_service.models import OrderHeader, OrderStatus
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import ConflictError, PersistenceError, ValidationError

from fakes import COMPANY_BUYER, EMPLOYEE


def _product(isbn, category_id=1, **prices):
    values = {"list_price": "20", "price": "18", "price50": "15", "price100": "12"}
    values.update(prices)
    return Product(
        title=f"Book {isbn}",
        author="Test Author",
        isbn=isbn,
        category_id=category_id,
        **{name: Decimal(value) for name, value in values.items()},
    )


class TestSave:
    async def test_save_commits_all_staged_changes(self, seeded):
        async with seeded() as uow:
            category = uow.category.add(Category(name="Poetry", display_order=4))
            uow.product.add(_product("POEM-1"))
            await uow.save()
            assert category.id is not None

        async with seeded() as uow:
            assert await uow.category.count() == 4
            assert await uow.product.exists(Product.isbn == "POEM-1")

    async def test_invalid_entity_aborts_the_whole_save(self, seeded):
        async with seeded() as uow:
            uow.category.add(Category(name="Poetry", display_order=4))
            product = uow.product.add(_product("POEM-1"))
            # Broken after staging; caught by the re-check at save time
            product.price100 = Decimal("50")
            with pytest.raises(ValidationError) as exc:
                await uow.save()
            assert "price" in exc.value.errors

        async with seeded() as uow:
            assert await uow.category.count() == 3
            assert not await uow.product.exists(Product.isbn == "POEM-1")

    async def test_product_without_category_aborts_the_category_insert(self, seeded):
        async with seeded() as uow:
            uow.category.add(Category(name="Poetry", display_order=4))
            product = uow.product.add(_product("POEM-2"))
            product.category_id = None
            with pytest.raises(ValidationError) as exc:
                await uow.save()
            assert exc.value.errors["category_id"] == ["This field is required."]

        async with seeded() as uow:
            assert not await uow.category.exists(Category.name == "Poetry")

    async def test_store_failure_is_wrapped_and_rolled_back(self, seeded):
        async with seeded() as uow:
            uow.category.add(Category(name="Poetry", display_order=4))
            uow.product.add(_product("SWD9999001"))  # ISBN already taken
            with pytest.raises(PersistenceError):
                await uow.save()

        async with seeded() as uow:
            assert await uow.category.count() == 3
            assert await uow.product.count() == 6

    async def test_foreign_key_violation_is_a_persistence_error(self, seeded):
        async with seeded() as uow:
            uow.product.add(_product("ORPHAN-1", category_id=42))
            with pytest.raises(PersistenceError):
                await uow.save()

    async def test_unsaved_changes_are_discarded_on_exit(self, seeded):
        async with seeded() as uow:
            category = await uow.category.get(Category.id == 1)
            category.name = "Adventure"

        async with seeded() as uow:
            assert (await uow.category.get(Category.id == 1)).name == "Action"

    async def test_explicit_rollback_drops_staged_work(self, seeded):
        async with seeded() as uow:
            uow.category.add(Category(name="Poetry", display_order=4))
            await uow.rollback()
            await uow.save()

        async with seeded() as uow:
            assert await uow.category.count() == 3


class TestConcurrency:
    async def test_stale_write_is_a_conflict(self, place_order, order_service, new_uow):
        order_id = await place_order(COMPANY_BUYER)

        async with new_uow() as stale:
            header = await stale.order_header.get_by_id(order_id)

            async with new_uow() as fresh:
                await order_service.approve_order(fresh, EMPLOYEE, order_id)

            header.carrier = "DHL"
            with pytest.raises(ConflictError):
                await stale.save()

        async with new_uow() as uow:
            header = await uow.order_header.get(OrderHeader.id == order_id)
        assert header.order_status == OrderStatus.APPROVED
        assert header.carrier is None
        assert header.version == 2

    async def test_updating_a_stale_detached_copy_is_a_conflict(self, place_order, order_service, new_uow):
        order_id = await place_order(COMPANY_BUYER)
        async with new_uow() as uow:
            stale = await uow.order_header.get(OrderHeader.id == order_id, tracking=False)

        async with new_uow() as uow:
            await order_service.approve_order(uow, EMPLOYEE, order_id)

        stale.carrier = "DHL"
        async with new_uow() as uow:
            with pytest.raises(ConflictError):
                await uow.order_header.update(stale)

        async with new_uow() as uow:
            header = await uow.order_header.get(OrderHeader.id == order_id)
        assert header.order_status == OrderStatus.APPROVED
        assert header.carrier is None


class TestScope:
    def test_session_is_unavailable_outside_the_block(self, session_factory):
        with pytest.raises(RuntimeError):
            UnitOfWork(session_factory).session
