from typing import Optional

from shared.data_access.repository import UpdatableRepository

from .models import Category, Product


class CategoryRepository(UpdatableRepository[Category]):
    model = Category


class ProductRepository(UpdatableRepository[Product]):
    model = Product

    async def get_by_isbn(self, isbn: str) -> Optional[Product]:
        return await self.get(Product.isbn == isbn)
