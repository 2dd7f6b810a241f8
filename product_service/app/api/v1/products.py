"""Product API endpoints"""

from typing import Optional

from fastapi import APIRouter, status

from ...schemas.inventory import InventoryUpdate
from ...schemas.product import ProductResponse
from ...services.inventory_service import InventoryService
from ..dependencies import CorrelationIdDep, InventoryServiceDep

router = APIRouter(prefix="/products")


@router.get("/{product_id}", status_code=status.HTTP_200_OK)
async def get_product(
    product_id: int, inventory_service: InventoryService = InventoryServiceDep
) -> ProductResponse:
    """Get a product with its current available inventory"""
    return ProductResponse.model_validate(await inventory_service.get_product(product_id))


@router.patch("/{product_id}/inventory", status_code=status.HTTP_200_OK)
async def update_inventory(
    product_id: int,
    inventory_data: InventoryUpdate,
    correlation_id: Optional[str] = CorrelationIdDep,
    inventory_service: InventoryService = InventoryServiceDep,
) -> ProductResponse:
    """Increase or decrease available inventory by a relative amount"""
    product = await inventory_service.adjust_inventory(
        product_id,
        inventory_data.quantity,
        inventory_data.is_increase,
        correlation_id=correlation_id,
    )
    return ProductResponse.model_validate(product)
