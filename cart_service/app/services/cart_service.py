"""
Cart store: guest and user carts, line items and guest-to-user merge.
"""

import secrets
from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    ConflictError,
    InsufficientInventoryError,
    InvalidUserError,
    NotFoundError,
    PersistenceError,
    UpstreamServiceError,
    ValidationError,
)
from ..core.settings import get_settings
from ..events.producers import CartEventProducer
from ..events.schemas import CartEventType
from ..models.base import utcnow
from ..models.cart import Cart, CartItem
from ..repository.cart_repository import CartRepository
from ..utils.logging import setup_cart_logging
from ..utils.service_clients import ProductCatalog, UserDirectory

logger = setup_cart_logging("cart_service.services.cart", log_level=get_settings().LOG_LEVEL)


def generate_session_id() -> str:
    return f"session-{secrets.token_hex(16)}"


async def build_cart_response(
    cart: Cart, product_client: ProductCatalog
) -> Dict[str, Any]:
    """Serialize a cart with current catalog names and prices.

    Pricing is best effort: an item whose product cannot be looked up is
    returned without a price and left out of the total.
    """
    items = []
    total = Decimal("0.00")
    for item in cart.items:
        line: Dict[str, Any] = {
            "id": item.id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "added_at": item.added_at,
        }
        try:
            product = await product_client.get_product(item.product_id)
        except UpstreamServiceError:
            product = None
        if product is not None:
            subtotal = product.price * item.quantity
            line.update(
                product_name=product.name, unit_price=product.price, subtotal=subtotal
            )
            total += subtotal
        items.append(line)

    return {
        "id": cart.id,
        "user_id": cart.user_id,
        "session_id": cart.session_id,
        "created_at": cart.created_at,
        "updated_at": cart.updated_at,
        "expires_at": cart.expires_at,
        "items": items,
        "total": total,
    }


class CartService:
    def __init__(
        self,
        session: AsyncSession,
        product_client: ProductCatalog,
        user_client: UserDirectory,
        event_producer: Optional[CartEventProducer] = None,
        cart_ttl_days: int = 7,
    ):
        self.session = session
        self.cart_repository = CartRepository(session)
        self.product_client = product_client
        self.user_client = user_client
        self.event_producer = event_producer
        self.cart_ttl = timedelta(days=cart_ttl_days)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Cart change conflicts with existing data") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to persist cart changes", exc_info=True)
            raise PersistenceError("Failed to persist cart changes") from e

    async def _emit(
        self,
        event_type: str,
        cart: Cart,
        product_id: Optional[int] = None,
        quantity: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        if self.event_producer:
            await self.event_producer.publish_cart_activity(
                event_type,
                cart,
                product_id=product_id,
                quantity=quantity,
                correlation_id=correlation_id,
            )

    async def _get_live_cart(self, cart_id: int, for_update: bool = False) -> Cart:
        cart = await self.cart_repository.get_cart(cart_id, for_update=for_update)
        if cart is None or cart.is_expired():
            raise NotFoundError(f"Cart {cart_id} not found")
        return cart

    async def _response(self, cart: Cart) -> Dict[str, Any]:
        return await build_cart_response(cart, self.product_client)

    @staticmethod
    def _validate_quantity(quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0")

    async def create_cart(
        self,
        user_id: Optional[int] = None,
        session_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if user_id is not None and not await self.user_client.user_exists(user_id):
            raise InvalidUserError(f"User {user_id} does not exist")

        session_id = session_id or generate_session_id()
        if await self.cart_repository.get_cart_by_session(session_id):
            raise ConflictError(f"A cart already exists for session {session_id}")

        now = utcnow()
        cart = Cart(
            user_id=user_id,
            session_id=session_id,
            created_at=now,
            updated_at=now,
            expires_at=now + self.cart_ttl,
            items=[],
        )
        self.cart_repository.add(cart)
        await self._commit()

        logger.info(
            "Cart created",
            extra={"cart_id": cart.id, "session_id": session_id, "user_id": user_id},
        )
        await self._emit(CartEventType.CREATED, cart, correlation_id=correlation_id)
        return await self._response(cart)

    async def get_cart(self, cart_id: int) -> Dict[str, Any]:
        return await self._response(await self._get_live_cart(cart_id))

    async def get_cart_by_session(self, session_id: str) -> Dict[str, Any]:
        cart = await self.cart_repository.get_cart_by_session(session_id)
        if cart is None or cart.is_expired():
            raise NotFoundError(f"No cart found for session {session_id}")
        return await self._response(cart)

    async def get_cart_by_user(self, user_id: int) -> Dict[str, Any]:
        cart = await self.cart_repository.get_live_cart_by_user(user_id, utcnow())
        if cart is None:
            raise NotFoundError(f"No cart found for user {user_id}")
        return await self._response(cart)

    async def add_item(
        self,
        cart_id: int,
        product_id: int,
        quantity: int,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._validate_quantity(quantity)

        product = await self.product_client.get_product(product_id)
        if product is None:
            raise ValidationError(f"Product {product_id} not found")

        cart = await self._get_live_cart(cart_id, for_update=True)
        existing = cart.find_item(product_id)
        requested = quantity + (existing.quantity if existing else 0)
        if product.inventory < requested:
            raise InsufficientInventoryError(
                f"Insufficient inventory for product {product.name} (ID: {product_id})",
                details={
                    "product_id": product_id,
                    "requested": requested,
                    "available": product.inventory,
                },
            )

        now = utcnow()
        if existing:
            existing.quantity = requested
        else:
            cart.items.append(
                CartItem(product_id=product_id, quantity=quantity, added_at=now)
            )
        cart.updated_at = now
        await self._commit()

        logger.info(
            "Item added to cart",
            extra={"cart_id": cart_id, "product_id": product_id, "quantity": requested},
        )
        await self._emit(
            CartEventType.ITEM_ADDED,
            cart,
            product_id=product_id,
            quantity=quantity,
            correlation_id=correlation_id,
        )
        return await self._response(cart)

    async def update_item_quantity(
        self,
        cart_id: int,
        item_id: int,
        quantity: int,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        self._validate_quantity(quantity)

        cart = await self._get_live_cart(cart_id, for_update=True)
        item = cart.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found in cart {cart_id}")

        product = await self.product_client.get_product(item.product_id)
        if product is None:
            raise ValidationError(f"Product {item.product_id} not found")
        if product.inventory < quantity:
            raise InsufficientInventoryError(
                f"Insufficient inventory for product {product.name} (ID: {product.id})",
                details={
                    "product_id": product.id,
                    "requested": quantity,
                    "available": product.inventory,
                },
            )

        item.quantity = quantity
        cart.updated_at = utcnow()
        await self._commit()

        await self._emit(
            CartEventType.ITEM_UPDATED,
            cart,
            product_id=item.product_id,
            quantity=quantity,
            correlation_id=correlation_id,
        )
        return await self._response(cart)

    async def remove_item(
        self, cart_id: int, item_id: int, correlation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        cart = await self._get_live_cart(cart_id, for_update=True)
        item = cart.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found in cart {cart_id}")

        product_id = item.product_id
        cart.items.remove(item)
        cart.updated_at = utcnow()
        await self._commit()

        await self._emit(
            CartEventType.ITEM_REMOVED,
            cart,
            product_id=product_id,
            correlation_id=correlation_id,
        )
        return await self._response(cart)

    async def delete_cart(
        self, cart_id: int, correlation_id: Optional[str] = None
    ) -> None:
        cart = await self.cart_repository.get_cart(cart_id, for_update=True)
        if cart is None:
            raise NotFoundError(f"Cart {cart_id} not found")

        await self.cart_repository.delete(cart)
        await self._commit()

        logger.info("Cart deleted", extra={"cart_id": cart_id})
        await self._emit(CartEventType.DELETED, cart, correlation_id=correlation_id)

    async def associate_with_user(
        self, cart_id: int, user_id: int, correlation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Attach a cart to a user, merging it into the user's live cart if any.

        The merge sums quantities per product into the user's cart and deletes
        the guest cart in the same transaction, so a failure leaves both carts
        as they were and the call can be retried.
        """
        if not await self.user_client.user_exists(user_id):
            raise InvalidUserError(f"User {user_id} does not exist")

        cart = await self._get_live_cart(cart_id, for_update=True)
        if cart.user_id is not None:
            if cart.user_id != user_id:
                raise ConflictError(
                    f"Cart {cart_id} is already associated with another user"
                )
            return await self._response(cart)

        now = utcnow()
        user_cart = await self.cart_repository.get_live_cart_by_user(
            user_id, now, exclude_cart_id=cart.id, for_update=True
        )

        if user_cart is None:
            cart.user_id = user_id
            cart.updated_at = now
            result = cart
        else:
            for guest_item in cart.items:
                target = user_cart.find_item(guest_item.product_id)
                if target:
                    target.quantity += guest_item.quantity
                else:
                    user_cart.items.append(
                        CartItem(
                            product_id=guest_item.product_id,
                            quantity=guest_item.quantity,
                            added_at=now,
                        )
                    )
            user_cart.updated_at = now
            await self.cart_repository.delete(cart)
            result = user_cart

        await self._commit()

        logger.info(
            "Cart associated with user",
            extra={
                "cart_id": cart_id,
                "user_id": user_id,
                "merged_into": result.id if result is not cart else None,
            },
        )
        await self._emit(CartEventType.UPDATED, result, correlation_id=correlation_id)
        return await self._response(result)
