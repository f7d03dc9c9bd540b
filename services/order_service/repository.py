from typing import Optional, Sequence

from shared.data_access.repository import Include, UpdatableRepository

from .models import OrderDetail, OrderHeader


class OrderHeaderRepository(UpdatableRepository[OrderHeader]):
    model = OrderHeader

    async def get_by_id(self, order_id: int, include: Sequence[Include] = ()) -> Optional[OrderHeader]:
        return await self.get(OrderHeader.id == order_id, include=include)

    async def get_by_correlation_token(self, token: str) -> Optional[OrderHeader]:
        return await self.get(OrderHeader.session_id == token)

    def update_payment_ids(self, header: OrderHeader, session_id: str, payment_intent_id: Optional[str] = None):
        """Stage the gateway identifiers on a tracked header."""
        if session_id:
            header.session_id = session_id
        if payment_intent_id:
            header.payment_intent_id = payment_intent_id


class OrderDetailRepository(UpdatableRepository[OrderDetail]):
    model = OrderDetail

    async def get_for_order(self, order_id: int, include: Sequence[Include] = ()) -> list[OrderDetail]:
        return await self.get_all(OrderDetail.order_header_id == order_id, include=include)
