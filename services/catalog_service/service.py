import structlog

from services.order_service.models import OrderDetail
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import NotFoundError, ValidationError
from shared.security import Caller, Role, require_role

from .models import Category, Product
from .schemas import CategoryCreate, ProductUpsert

logger = structlog.get_logger(__name__)


class CategoryService:

    @staticmethod
    async def list_categories(uow: UnitOfWork) -> list[Category]:
        categories = await uow.category.get_all()
        return sorted(categories, key=lambda c: (c.display_order, c.id))

    @staticmethod
    async def get_category(uow: UnitOfWork, category_id: int) -> Category:
        category = await uow.category.get(Category.id == category_id)
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    @staticmethod
    async def create_category(uow: UnitOfWork, caller: Caller, data: CategoryCreate) -> Category:
        require_role(caller, Role.ADMIN)
        category = uow.category.add(Category(name=data.name, display_order=data.display_order))
        await uow.save()
        logger.info("category_created", category_id=category.id, name=category.name)
        return category

    @staticmethod
    async def update_category(uow: UnitOfWork, caller: Caller, category_id: int, data: CategoryCreate) -> Category:
        require_role(caller, Role.ADMIN)
        await CategoryService.get_category(uow, category_id)
        category = await uow.category.update(
            Category(id=category_id, name=data.name, display_order=data.display_order)
        )
        await uow.save()
        return category

    @staticmethod
    async def delete_category(uow: UnitOfWork, caller: Caller, category_id: int) -> None:
        require_role(caller, Role.ADMIN)
        category = await CategoryService.get_category(uow, category_id)
        if await uow.product.exists(Product.category_id == category_id):
            raise ValidationError({"category_id": ["Category is still referenced by products."]})
        await uow.category.remove(category)
        await uow.save()
        logger.info("category_deleted", category_id=category_id)


class ProductService:

    @staticmethod
    async def list_products(uow: UnitOfWork) -> list[Product]:
        return await uow.product.get_all(include=[Product.category])

    @staticmethod
    async def get_product(uow: UnitOfWork, product_id: int) -> Product:
        product = await uow.product.get(Product.id == product_id, include=[Product.category])
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    @staticmethod
    async def upsert_product(uow: UnitOfWork, caller: Caller, data: ProductUpsert) -> Product:
        """Create the product when `data.id` is empty, otherwise replace the stored row."""
        require_role(caller, Role.ADMIN)

        if not await uow.category.exists(Category.id == data.category_id):
            raise ValidationError({"category_id": [f"Category {data.category_id} does not exist."]})

        same_isbn = await uow.product.get_by_isbn(data.isbn)
        if same_isbn and same_isbn.id != data.id:
            raise ValidationError({"isbn": [f"ISBN {data.isbn} is already used by product {same_isbn.id}."]})

        if data.id is None:
            product = uow.product.add(Product(**data.model_dump(exclude={"id"})))
        else:
            if not await uow.product.exists(Product.id == data.id):
                raise NotFoundError("Product", data.id)
            product = await uow.product.update(Product(**data.model_dump()))

        await uow.save()
        logger.info("product_saved", product_id=product.id, isbn=product.isbn)
        return product

    @staticmethod
    async def delete_product(uow: UnitOfWork, caller: Caller, product_id: int) -> None:
        require_role(caller, Role.ADMIN)
        product = await uow.product.get(Product.id == product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        # Order lines keep a reference for display
        if await uow.order_detail.exists(OrderDetail.product_id == product_id):
            raise ValidationError({"product_id": ["Product appears on existing orders."]})
        await uow.product.remove(product)
        await uow.save()
        logger.info("product_deleted", product_id=product_id)
