from typing import Any, Dict, Optional

from ..core.settings import get_settings
from ..models.base import utcnow
from ..models.cart import Cart
from ..utils.logging import setup_cart_logging
from .base import BaseEvent, EventPublisher
from .schemas import CartActivityData

logger = setup_cart_logging("cart_service.events.producer", log_level=get_settings().LOG_LEVEL)


class BaseEventPublisher:
    """Base class for event publishers with common functionality"""

    def __init__(
        self,
        event_publisher: EventPublisher,
        source_service: str = "cart-service",
    ):
        self.event_publisher = event_publisher
        self.source_service = source_service

    async def _publish_event(
        self,
        event: BaseEvent,
        topic: str,
        event_name: str,
        log_data: Dict[str, Any],
        raise_on_failure: bool = True,
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
            if raise_on_failure:
                raise


class CartEventProducer(BaseEventPublisher):
    """Fire-and-forget cart activity events.

    Cart activity is informational, so a failed publish is logged and never
    surfaces to the caller.
    """

    def __init__(
        self,
        event_publisher: EventPublisher,
        topic: str = "cart_events",
        source_service: str = "cart-service",
    ):
        super().__init__(event_publisher, source_service)
        self.topic = topic

    async def publish_cart_activity(
        self,
        event_type: str,
        cart: Cart,
        product_id: Optional[int] = None,
        quantity: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        event_data = CartActivityData(
            event_type=event_type,
            cart_id=cart.id,
            user_id=cart.user_id,
            session_id=cart.session_id,
            product_id=product_id,
            quantity=quantity,
            event_time=utcnow(),
        )
        event = BaseEvent(
            event_type=event_type,
            source_service=self.source_service,
            correlation_id=correlation_id,
            data=event_data.model_dump(mode="json"),
        )
        await self._publish_event(
            event=event,
            topic=self.topic,
            event_name=f"cart {event_type}",
            log_data={"cart_id": cart.id, "event_type": event_type},
            raise_on_failure=False,
        )
