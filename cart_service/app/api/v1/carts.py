from typing import Optional

from fastapi import APIRouter, Header, status

from ...schemas.cart import (
    CartCreate,
    CartItemCreate,
    CartItemUpdate,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    DeleteResult,
)
from ...services.cart_service import CartService
from ...services.checkout_service import CheckoutService
from ..deps import CartServiceDep, CheckoutServiceDep, CorrelationIdDep

router = APIRouter(prefix="/carts")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_cart(
    cart_data: CartCreate,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> CartResponse:
    """Create a guest or user cart"""
    result = await cart_service.create_cart(
        user_id=cart_data.user_id,
        session_id=cart_data.session_id,
        correlation_id=correlation_id,
    )
    return CartResponse(**result)


@router.get("/session/{session_id}")
async def get_cart_by_session(
    session_id: str, cart_service: CartService = CartServiceDep
) -> CartResponse:
    return CartResponse(**await cart_service.get_cart_by_session(session_id))


@router.get("/user/{user_id}")
async def get_cart_by_user(
    user_id: int, cart_service: CartService = CartServiceDep
) -> CartResponse:
    return CartResponse(**await cart_service.get_cart_by_user(user_id))


@router.get("/{cart_id}")
async def get_cart(cart_id: int, cart_service: CartService = CartServiceDep) -> CartResponse:
    return CartResponse(**await cart_service.get_cart(cart_id))


@router.delete("/{cart_id}")
async def delete_cart(
    cart_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> DeleteResult:
    await cart_service.delete_cart(cart_id, correlation_id=correlation_id)
    return DeleteResult()


@router.post("/{cart_id}/items")
async def add_item(
    cart_id: int,
    item_data: CartItemCreate,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> CartResponse:
    """Add a product to the cart, incrementing the line if it already exists"""
    result = await cart_service.add_item(
        cart_id,
        item_data.product_id,
        item_data.quantity,
        correlation_id=correlation_id,
    )
    return CartResponse(**result)


@router.put("/{cart_id}/items/{item_id}")
async def update_item(
    cart_id: int,
    item_id: int,
    item_data: CartItemUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> CartResponse:
    result = await cart_service.update_item_quantity(
        cart_id, item_id, item_data.quantity, correlation_id=correlation_id
    )
    return CartResponse(**result)


@router.delete("/{cart_id}/items/{item_id}")
async def remove_item(
    cart_id: int,
    item_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> CartResponse:
    result = await cart_service.remove_item(
        cart_id, item_id, correlation_id=correlation_id
    )
    return CartResponse(**result)


@router.put("/{cart_id}/user/{user_id}")
async def associate_cart_with_user(
    cart_id: int,
    user_id: int,
    correlation_id: Optional[str] = CorrelationIdDep,
    cart_service: CartService = CartServiceDep,
) -> CartResponse:
    """Attach a guest cart to a user, merging it into the user's cart if one exists"""
    result = await cart_service.associate_with_user(
        cart_id, user_id, correlation_id=correlation_id
    )
    return CartResponse(**result)


@router.post("/{cart_id}/checkout")
async def checkout(
    cart_id: int,
    checkout_data: CheckoutRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    correlation_id: Optional[str] = CorrelationIdDep,
    checkout_service: CheckoutService = CheckoutServiceDep,
) -> CheckoutResponse:
    result = await checkout_service.checkout(
        cart_id,
        shipping_address=checkout_data.shipping_address,
        payment_method=checkout_data.payment_method,
        idempotency_key=idempotency_key,
        correlation_id=correlation_id,
    )
    return CheckoutResponse(**result)
