from decimal import Decimal

import pytest

from main import seed_reference_data
from services.cart_service.schemas import CartItemCreate
from services.cart_service.service import CartService
from services.catalog_service.models import Category, Product
from services.catalog_service.schemas import CategoryCreate, CategoryResponse, ProductResponse, ProductUpsert
from services.catalog_service.service import CategoryService, ProductService
from shared.exceptions import AuthorizationError, NotFoundError, ValidationError

from fakes import ADMIN, CUSTOMER, EMPLOYEE


def _upsert(**overrides):
    fields = dict(
        title="The Quiet Harbor",
        author="Mei Tan",
        isbn="QH0001",
        list_price=Decimal("40"),
        price=Decimal("35"),
        price50=Decimal("30"),
        price100=Decimal("25"),
        category_id=2,
    )
    fields.update(overrides)
    return ProductUpsert(**fields)


class TestSeedData:
    async def test_seed_runs_once(self, seeded, session_factory):
        assert await seed_reference_data(session_factory) is False
        async with seeded() as uow:
            assert await uow.category.count() == 3
            assert await uow.company.count() == 3
            assert await uow.product.count() == 6


class TestCategories:
    async def test_listed_by_display_order(self, seeded):
        async with seeded() as uow:
            await CategoryService.create_category(uow, ADMIN, CategoryCreate(name="Biography", display_order=2))
        async with seeded() as uow:
            names = [c.name for c in await CategoryService.list_categories(uow)]
        assert names == ["Action", "SciFi", "Biography", "History"]

    async def test_display_order_range(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError) as exc:
                await CategoryService.create_category(uow, ADMIN, CategoryCreate(name="Poetry", display_order=101))
        assert "display_order" in exc.value.errors

    async def test_name_may_not_equal_display_order(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError) as exc:
                await CategoryService.create_category(uow, ADMIN, CategoryCreate(name="7", display_order=7))
        assert exc.value.errors["name"] == ["The Display Order cannot exactly match the Name."]

    async def test_only_admins_manage_categories(self, seeded):
        async with seeded() as uow:
            with pytest.raises(AuthorizationError):
                await CategoryService.create_category(uow, EMPLOYEE, CategoryCreate(name="Poetry", display_order=4))

    async def test_update(self, seeded):
        async with seeded() as uow:
            await CategoryService.update_category(uow, ADMIN, 3, CategoryCreate(name="World History", display_order=3))
        async with seeded() as uow:
            category = await CategoryService.get_category(uow, 3)
        assert CategoryResponse.model_validate(category).name == "World History"

    async def test_update_unknown(self, seeded):
        async with seeded() as uow:
            with pytest.raises(NotFoundError):
                await CategoryService.update_category(uow, ADMIN, 9, CategoryCreate(name="X", display_order=4))

    async def test_referenced_category_cannot_be_deleted(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError):
                await CategoryService.delete_category(uow, ADMIN, 2)

    async def test_delete_unused_category(self, seeded):
        async with seeded() as uow:
            category = await CategoryService.create_category(uow, ADMIN, CategoryCreate(name="Poetry", display_order=4))
        async with seeded() as uow:
            await CategoryService.delete_category(uow, ADMIN, category.id)
        async with seeded() as uow:
            assert not await uow.category.exists(Category.id == category.id)


class TestProducts:
    async def test_create(self, seeded):
        async with seeded() as uow:
            product = await ProductService.upsert_product(uow, ADMIN, _upsert())
        async with seeded() as uow:
            stored = await ProductService.get_product(uow, product.id)
        response = ProductResponse.model_validate(stored)
        assert response.category.name == "SciFi"
        assert response.price50 == Decimal("30")

    async def test_replace_existing(self, seeded):
        async with seeded() as uow:
            await ProductService.upsert_product(
                uow, ADMIN, _upsert(
                    id=2,
                    isbn="CAW777777701",
                    title="Dark Skies",
                    price=Decimal("28"),
                    price50=Decimal("25"),
                    price100=Decimal("20"),
                )
            )
        async with seeded() as uow:
            product = await uow.product.get(Product.id == 2)
        assert product.price == Decimal("28")
        assert product.description is None

    async def test_isbn_must_be_unique(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError) as exc:
                await ProductService.upsert_product(uow, ADMIN, _upsert(isbn="SWD9999001"))
        assert "isbn" in exc.value.errors

    async def test_category_must_exist(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError) as exc:
                await ProductService.upsert_product(uow, ADMIN, _upsert(category_id=77))
        assert "category_id" in exc.value.errors

    async def test_tiers_must_not_increase(self, seeded):
        async with seeded() as uow:
            with pytest.raises(ValidationError):
                await ProductService.upsert_product(uow, ADMIN, _upsert(price100=Decimal("36")))
        async with seeded() as uow:
            assert await uow.product.count() == 6

    async def test_replace_unknown_product(self, seeded):
        async with seeded() as uow:
            with pytest.raises(NotFoundError):
                await ProductService.upsert_product(uow, ADMIN, _upsert(id=99))

    async def test_customers_cannot_edit_the_catalog(self, seeded):
        async with seeded() as uow:
            with pytest.raises(AuthorizationError):
                await ProductService.upsert_product(uow, CUSTOMER, _upsert())

    async def test_list_includes_categories(self, seeded):
        async with seeded() as uow:
            products = await ProductService.list_products(uow)
        assert {p.category.name for p in products} == {"Action", "SciFi", "History"}

    async def test_ordered_product_cannot_be_deleted(self, place_order, new_uow):
        await place_order(CUSTOMER, (5, 1))
        async with new_uow() as uow:
            with pytest.raises(ValidationError):
                await ProductService.delete_product(uow, ADMIN, 5)

    async def test_delete_removes_cart_lines(self, seeded):
        async with seeded() as uow:
            await CartService.add_item(uow, CUSTOMER, CartItemCreate(product_id=6, count=2))
        async with seeded() as uow:
            await ProductService.delete_product(uow, ADMIN, 6)
        async with seeded() as uow:
            assert await CartService.count_lines(uow, CUSTOMER) == 0
            with pytest.raises(NotFoundError):
                await ProductService.get_product(uow, 6)
