from decimal import Decimal

import pytest

from services.catalog_service.models import Category, Product
from services.order_service.models import OrderDetail, OrderHeader
from shared.exceptions import ValidationError

from fakes import CUSTOMER


class TestReads:
    async def test_get_returns_first_match(self, seeded):
        async with seeded() as uow:
            product = await uow.product.get(Product.isbn == "SWD9999001")
        assert product.title == "Fortune of Time"

    async def test_get_returns_none_when_nothing_matches(self, seeded):
        async with seeded() as uow:
            assert await uow.product.get(Product.id == 999) is None

    async def test_get_all_without_filter_returns_everything(self, seeded):
        async with seeded() as uow:
            products = await uow.product.get_all()
        assert len(products) == 6

    async def test_get_all_with_predicate(self, seeded):
        async with seeded() as uow:
            products = await uow.product.get_all(predicate=Product.category_id == 1)
        assert sorted(p.isbn for p in products) == ["CAW777777701", "FOT000000001", "SWD9999001"]

    async def test_count_and_exists(self, seeded):
        async with seeded() as uow:
            assert await uow.category.count() == 3
            assert await uow.product.count(Product.category_id == 3) == 2
            assert await uow.category.exists(Category.name == "SciFi")
            assert not await uow.category.exists(Category.name == "Poetry")


class TestEagerLoading:
    @pytest.mark.filterwarnings("error::sqlalchemy.exc.SADeprecationWarning")
    async def test_relation_not_requested_reads_as_none(self, seeded):
        async with seeded() as uow:
            product = await uow.product.get(Product.id == 1)
        assert product.category_id == 1
        assert product.category is None

    async def test_included_relation_is_populated(self, seeded):
        async with seeded() as uow:
            product = await uow.product.get(Product.id == 4, include=[Product.category])
        assert product.category.name == "SciFi"

    async def test_include_applies_to_every_row(self, seeded):
        async with seeded() as uow:
            products = await uow.product.get_all(include=[Product.category])
        assert len(products) == 6
        assert all(p.category is not None and p.category.id == p.category_id for p in products)

    async def test_nested_include_path(self, place_order, new_uow):
        order_id = await place_order(CUSTOMER, (1, 2), (4, 1))
        async with new_uow() as uow:
            header = await uow.order_header.get(
                OrderHeader.id == order_id,
                include=[OrderHeader.application_user, (OrderHeader.details, OrderDetail.product)],
            )
        assert header.application_user.email == "ana@bookstore.com"
        assert [d.product.isbn for d in header.details] == ["SWD9999001", "WS3333333301"]

    async def test_unknown_relation_is_rejected(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValueError):
                await uow.product.get_all(include=[Product.title])
            with pytest.raises(ValueError):
                await uow.product.get_all(include=[OrderDetail.product])


class TestTracking:
    async def test_untracked_results_are_not_saved(self, seeded):
        async with seeded() as uow:
            categories = await uow.category.get_all(tracking=False)
            categories[0].name = "Changed"
            await uow.save()

        async with seeded() as uow:
            assert not await uow.category.exists(Category.name == "Changed")

    async def test_tracked_results_are_saved(self, seeded):
        async with seeded() as uow:
            category = await uow.category.get(Category.id == 1)
            category.name = "Thriller"
            await uow.save()

        async with seeded() as uow:
            assert (await uow.category.get(Category.id == 1)).name == "Thriller"


class TestStagedWrites:
    async def test_add_is_not_visible_until_save(self, seeded):
        async with seeded() as uow:
            uow.category.add(Category(name="Poetry", display_order=4))
            assert await uow.category.count() == 3

        async with seeded() as uow:
            assert await uow.category.count() == 3

    async def test_update_replaces_the_stored_row(self, seeded):
        async with seeded() as uow:
            await uow.category.update(Category(id=2, name="Science Fiction", display_order=9))
            await uow.save()

        async with seeded() as uow:
            category = await uow.category.get(Category.id == 2)
        assert (category.name, category.display_order) == ("Science Fiction", 9)

    async def test_remove_cascades_to_order_lines(self, place_order, new_uow):
        order_id = await place_order(CUSTOMER, (1, 2), (2, 3))
        async with new_uow() as uow:
            header = await uow.order_header.get_by_id(order_id)
            await uow.order_header.remove(header)
            await uow.save()

        async with new_uow() as uow:
            assert await uow.order_header.count() == 0
            assert await uow.order_detail.count() == 0

    async def test_remove_range(self, seeded):
        async with seeded() as uow:
            products = await uow.product.get_all(Product.category_id == 3)
            await uow.product.remove_range(products)
            await uow.save()

        async with seeded() as uow:
            assert await uow.product.count() == 4

    async def test_add_validates_immediately(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError) as exc:
                uow.product.add(
                    Product(
                        title="No Category",
                        author="Anon",
                        isbn="NC1",
                        list_price=Decimal("5"),
                        price=Decimal("5"),
                        price50=Decimal("4"),
                        price100=Decimal("3"),
                    )
                )
        assert "category_id" in exc.value.errors
