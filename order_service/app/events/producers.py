from typing import Any, Dict, Optional

from ..core.settings import get_settings
from ..models.order import Order, OrderItem
from ..utils.logging import setup_order_logging as setup_logging
from .base import BaseEvent, EventPublisher
from .schemas import (
    InventoryAdjustmentData,
    OrderEventType,
    OrderHistoryData,
    inventory_event_id,
    order_history_event_id,
)

logger = setup_logging("order_service.events.producer", log_level=get_settings().LOG_LEVEL)


class BaseEventPublisher:
    """Base class for event publishers with common functionality"""

    def __init__(
        self,
        event_publisher: EventPublisher,
        source_service: str = "order-service",
    ):
        self.event_publisher = event_publisher
        self.source_service = source_service

    async def _publish_event(
        self,
        event: BaseEvent,
        topic: str,
        event_name: str,
        log_data: Dict[str, Any],
    ) -> None:
        """Common event publishing logic with error handling and logging"""
        try:
            await self.event_publisher.publish(event, topic=topic)
            logger.info(f"Published {event_name} event.", extra=log_data)
        except Exception as e:
            logger.error(
                f"Failed to publish {event_name} event: {e}",
                extra={**log_data, "event_id": event.event_id},
            )
            raise


class OrderEventProducer(BaseEventPublisher):
    """Publishes inventory adjustments and order-history records."""

    def __init__(
        self,
        event_publisher: EventPublisher,
        inventory_topic: str = "inventory_updates",
        order_topic: str = "order_updates",
        source_service: str = "order-service",
    ):
        super().__init__(event_publisher, source_service)
        self.inventory_topic = inventory_topic
        self.order_topic = order_topic

    async def publish_inventory_adjustment(
        self,
        order: Order,
        item: OrderItem,
        is_increase: bool,
        correlation_id: Optional[str] = None,
    ) -> None:
        event_data = InventoryAdjustmentData(
            product_id=item.product_id,
            quantity=item.quantity,
            is_increase=is_increase,
        )
        event = BaseEvent(
            event_id=inventory_event_id(order.id, item.id, is_increase),
            event_type=OrderEventType.INVENTORY_UPDATE,
            source_service=self.source_service,
            correlation_id=correlation_id,
            data=event_data.model_dump(mode="json"),
        )
        await self._publish_event(
            event=event,
            topic=self.inventory_topic,
            event_name="inventory adjustment",
            log_data={
                "order_id": order.id,
                "product_id": item.product_id,
                "quantity": item.quantity,
                "is_increase": is_increase,
            },
        )

    async def publish_order_history(
        self, order: Order, correlation_id: Optional[str] = None
    ) -> None:
        event_data = OrderHistoryData(
            user_id=order.user_id,
            order_id=order.id,
            total=order.total_price,
            status=order.status,
            created_at=order.created_at,
        )
        event = BaseEvent(
            event_id=order_history_event_id(order.id, order.status),
            event_type=OrderEventType.ORDER_UPDATE,
            source_service=self.source_service,
            correlation_id=correlation_id,
            data=event_data.model_dump(mode="json"),
        )
        await self._publish_event(
            event=event,
            topic=self.order_topic,
            event_name="order history",
            log_data={"order_id": order.id, "status": order.status},
        )
