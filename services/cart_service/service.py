from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import structlog
from opentelemetry import trace

from services.catalog_service.models import Product
from services.order_service.models import OrderDetail, OrderHeader, OrderStatus, PaymentStatus
from services.user_service.models import ApplicationUser
from shared.data_access.unit_of_work import UnitOfWork
from shared.exceptions import EmptyCartError, NotFoundError
from shared.observability import (
    ecomm_active_carts,
    ecomm_checkout_duration_seconds,
    ecomm_checkout_total,
)
from shared.security import Caller, Role

from .models import ShoppingCart
from .pricing import resolve_unit_price
from .schemas import CartItemCreate, CartLineResponse, CartResponse, ShippingDetails

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

SNAPSHOT_FIELDS = ("name", "phone_number", "street_address", "city", "state", "postal_code")


class CartService:

    @staticmethod
    async def add_item(uow: UnitOfWork, caller: Caller, data: CartItemCreate) -> ShoppingCart:
        product = await uow.product.get(Product.id == data.product_id)
        if not product:
            raise NotFoundError("Product", data.product_id)

        was_empty = await uow.shopping_cart.count(ShoppingCart.application_user_id == caller.user_id) == 0

        existing_item = await uow.shopping_cart.get_item(caller.user_id, data.product_id)
        if existing_item:
            existing_item.count += data.count
            item = existing_item
        else:
            item = uow.shopping_cart.add(
                ShoppingCart(
                    application_user_id=caller.user_id,
                    product_id=data.product_id,
                    count=data.count,
                )
            )

        await uow.save()
        if was_empty:
            ecomm_active_carts.inc()
        logger.info("cart_item_added", user_id=caller.user_id, product_id=data.product_id, count=item.count)
        return item

    @staticmethod
    async def increment(uow: UnitOfWork, caller: Caller, cart_id: int) -> ShoppingCart:
        item = await CartService._owned_item(uow, caller, cart_id)
        item.count += 1
        await uow.save()
        return item

    @staticmethod
    async def decrement(uow: UnitOfWork, caller: Caller, cart_id: int) -> Optional[ShoppingCart]:
        """Lower the count by one. The line is removed once it would drop below one."""
        item = await CartService._owned_item(uow, caller, cart_id)
        if item.count <= 1:
            await CartService._remove_line(uow, caller, item)
            return None
        item.count -= 1
        await uow.save()
        return item

    @staticmethod
    async def remove_item(uow: UnitOfWork, caller: Caller, cart_id: int) -> None:
        item = await CartService._owned_item(uow, caller, cart_id)
        await CartService._remove_line(uow, caller, item)

    @staticmethod
    async def get_cart(uow: UnitOfWork, caller: Caller) -> CartResponse:
        items = await uow.shopping_cart.get_for_user(caller.user_id, include=[ShoppingCart.product])
        lines = []
        for item in items:
            unit_price = resolve_unit_price(item.product, item.count)
            lines.append(
                CartLineResponse(
                    id=item.id,
                    product_id=item.product_id,
                    product_title=item.product.title,
                    count=item.count,
                    unit_price=unit_price,
                    line_total=unit_price * item.count,
                )
            )
        total = sum((line.line_total for line in lines), Decimal("0"))
        return CartResponse(user_id=caller.user_id, lines=lines, total=total)

    @staticmethod
    async def count_lines(uow: UnitOfWork, caller: Caller) -> int:
        return await uow.shopping_cart.count(ShoppingCart.application_user_id == caller.user_id)

    # --- CHECKOUT ---

    @staticmethod
    async def checkout(
        uow: UnitOfWork, caller: Caller, shipping: Optional[ShippingDetails] = None
    ) -> OrderHeader:
        """Turn the caller's cart into an order and consume the cart.

        Unit prices are resolved per line by quantity tier and copied onto the
        order lines together with the product title. Company customers get
        net-terms billing instead of an immediate charge.
        """
        with tracer.start_as_current_span("cart.checkout"), ecomm_checkout_duration_seconds.time():
            user = await uow.application_user.get(ApplicationUser.id == caller.user_id)
            if not user:
                raise NotFoundError("ApplicationUser", caller.user_id)

            items = await uow.shopping_cart.get_for_user(user.id, include=[ShoppingCart.product])
            if not items:
                ecomm_checkout_total.labels(status="empty_cart").inc()
                raise EmptyCartError(f"Shopping cart of user {user.id} is empty", {"user_id": user.id})

            details = [CartService._build_detail(item) for item in items]
            is_company = user.role == Role.COMPANY

            header = OrderHeader(
                application_user_id=user.id,
                order_date=datetime.now(timezone.utc),
                order_total=sum((detail.line_total for detail in details), Decimal("0")),
                order_status=OrderStatus.PENDING,
                payment_status=PaymentStatus.DELAYED_PAYMENT if is_company else PaymentStatus.PENDING,
                **CartService._shipping_snapshot(user, shipping),
            )
            header.details = details

            try:
                uow.order_header.add(header)
                await uow.shopping_cart.remove_range(items)
                await uow.save()
            except Exception:
                ecomm_checkout_total.labels(status="failed").inc()
                raise

            ecomm_checkout_total.labels(status="success").inc()
            ecomm_active_carts.dec()
            logger.info(
                "checkout_completed",
                user_id=user.id,
                order_id=header.id,
                lines=len(details),
                order_total=str(header.order_total),
                payment_status=header.payment_status.value,
            )
            return header

    # --- HELPERS ---

    @staticmethod
    def _build_detail(item: ShoppingCart) -> OrderDetail:
        return OrderDetail(
            product_id=item.product_id,
            product_title=item.product.title,
            count=item.count,
            price=resolve_unit_price(item.product, item.count),
        )

    @staticmethod
    def _shipping_snapshot(user: ApplicationUser, shipping: Optional[ShippingDetails]) -> dict:
        overrides = shipping.model_dump(exclude_none=True) if shipping else {}
        return {field: overrides.get(field, getattr(user, field)) for field in SNAPSHOT_FIELDS}

    @staticmethod
    async def _owned_item(uow: UnitOfWork, caller: Caller, cart_id: int) -> ShoppingCart:
        item = await uow.shopping_cart.get(
            (ShoppingCart.id == cart_id) & (ShoppingCart.application_user_id == caller.user_id)
        )
        if not item:
            raise NotFoundError("ShoppingCart", cart_id)
        return item

    @staticmethod
    async def _remove_line(uow: UnitOfWork, caller: Caller, item: ShoppingCart) -> None:
        await uow.shopping_cart.remove(item)
        await uow.save()
        if await uow.shopping_cart.count(ShoppingCart.application_user_id == caller.user_id) == 0:
            ecomm_active_carts.dec()
