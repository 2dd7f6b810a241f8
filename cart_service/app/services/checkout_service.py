"""
Checkout orchestration: hand a cart to the Order Service and clear it.
"""

from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError
from ..core.settings import get_settings
from ..events.producers import CartEventProducer
from ..events.schemas import CartEventType
from ..repository.cart_repository import CartRepository
from ..utils.logging import setup_cart_logging
from ..utils.service_clients import OrderGateway, ProductCatalog
from .cart_service import build_cart_response

logger = setup_cart_logging("cart_service.services.checkout", log_level=get_settings().LOG_LEVEL)


class CheckoutService:
    def __init__(
        self,
        session: AsyncSession,
        product_client: ProductCatalog,
        order_client: OrderGateway,
        event_producer: Optional[CartEventProducer] = None,
    ):
        self.session = session
        self.cart_repository = CartRepository(session)
        self.product_client = product_client
        self.order_client = order_client
        self.event_producer = event_producer

    async def checkout(
        self,
        cart_id: int,
        shipping_address: Optional[str] = None,
        payment_method: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create an order from the cart.

        The order request carries an idempotency key derived from the cart's
        checkout token unless the caller supplies one, so retrying a checkout
        whose cart cleanup failed returns the same order. Order rejections
        leave the cart untouched.
        """
        cart = await self.cart_repository.get_cart(cart_id)
        if cart is None or cart.is_expired():
            raise NotFoundError(f"Cart {cart_id} not found")
        if not cart.items:
            raise ValidationError("Cart is empty")
        if cart.user_id is None:
            raise ValidationError("Cart must be associated with a user to checkout")

        priced_cart = await build_cart_response(cart, self.product_client)
        idempotency_key = idempotency_key or f"checkout-{cart.checkout_token}"
        items = [
            {"product_id": item.product_id, "quantity": item.quantity}
            for item in cart.items
        ]

        logger.info(
            "Submitting cart for checkout",
            extra={
                "cart_id": cart_id,
                "user_id": cart.user_id,
                "item_count": len(items),
                "estimated_total": str(priced_cart["total"]),
                "idempotency_key": idempotency_key,
                "shipping_address_provided": bool(shipping_address),
                "payment_method": payment_method,
            },
        )

        order = await self.order_client.create_order(
            user_id=cart.user_id,
            items=items,
            idempotency_key=idempotency_key,
            correlation_id=correlation_id,
        )

        if self.event_producer:
            await self.event_producer.publish_cart_activity(
                CartEventType.CHECKOUT, cart, correlation_id=correlation_id
            )

        # The order exists now; a failed cleanup must not fail the checkout
        try:
            await self.cart_repository.delete(cart)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.error(
                "Order created but cart could not be cleared",
                exc_info=True,
                extra={"cart_id": cart_id, "order_id": order.get("id")},
            )

        logger.info(
            "Checkout completed",
            extra={"cart_id": cart_id, "order_id": order.get("id")},
        )
        return {"message": "Order created successfully", "order": order}
