"""
Events module for the Product Service.

Consumers:
    - InventoryAdjustmentHandler: applies inventory_update events to the ledger
    - ProductEventConsumer: subscribes the handler to the inventory topic
"""

from .event_consumers import InventoryAdjustmentHandler, ProductEventConsumer

__all__ = [
    "InventoryAdjustmentHandler",
    "ProductEventConsumer",
]
