from typing import Optional

from fastapi import APIRouter, Header, Query, status

from ...schemas.order import (
    CreateOrderRequest,
    OrderListResponse,
    OrderResponse,
    UpdateOrderStatusRequest,
)
from ...services.order_service import OrderService
from ..deps import CorrelationIdDep, OrderServiceDep

router = APIRouter(prefix="/orders")


@router.get("", status_code=status.HTTP_200_OK)
async def list_orders(
    user_id: Optional[int] = Query(None, description="Only orders for this user"),
    order_service: OrderService = OrderServiceDep,
) -> OrderListResponse:
    """List orders, newest first"""
    orders = await order_service.list_orders(user_id=user_id)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: CreateOrderRequest,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    correlation_id: Optional[str] = CorrelationIdDep,
    order_service: OrderService = OrderServiceDep,
) -> OrderResponse:
    """Create a new order; a repeated Idempotency-Key returns the original order"""
    order = await order_service.create_order(
        user_id=order_data.user_id,
        items=[item.model_dump() for item in order_data.items],
        idempotency_key=idempotency_key,
        correlation_id=correlation_id,
    )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", status_code=status.HTTP_200_OK)
async def get_order(
    order_id: int, order_service: OrderService = OrderServiceDep
) -> OrderResponse:
    return OrderResponse.model_validate(await order_service.get_order(order_id))


@router.patch("/{order_id}/status", status_code=status.HTTP_200_OK)
async def update_order_status(
    order_id: int,
    status_data: UpdateOrderStatusRequest,
    correlation_id: Optional[str] = CorrelationIdDep,
    order_service: OrderService = OrderServiceDep,
) -> OrderResponse:
    """Move an order through its lifecycle"""
    order = await order_service.update_order_status(
        order_id, status_data.status, correlation_id=correlation_id
    )
    return OrderResponse.model_validate(order)
