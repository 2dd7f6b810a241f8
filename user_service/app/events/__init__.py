"""
Events module for the User Service.

Consumers:
    - OrderHistoryProjector: appends order_update events to order history
    - UserEventConsumer: subscribes the projector to the order topic
"""

from .event_consumers import OrderHistoryProjector, UserEventConsumer

__all__ = ["OrderHistoryProjector", "UserEventConsumer"]
