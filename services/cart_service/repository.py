from typing import Optional, Sequence

from shared.data_access.repository import Include, UpdatableRepository

from .models import ShoppingCart


class ShoppingCartRepository(UpdatableRepository[ShoppingCart]):
    model = ShoppingCart

    async def get_for_user(self, user_id: str, include: Sequence[Include] = ()) -> list[ShoppingCart]:
        return await self.get_all(ShoppingCart.application_user_id == user_id, include=include)

    async def get_item(self, user_id: str, product_id: int) -> Optional[ShoppingCart]:
        return await self.get(
            (ShoppingCart.application_user_id == user_id) & (ShoppingCart.product_id == product_id)
        )
