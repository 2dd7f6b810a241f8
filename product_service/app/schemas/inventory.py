from pydantic import BaseModel


class InventoryUpdate(BaseModel):
    """Relative change to a product's available quantity"""

    quantity: int
    is_increase: bool
