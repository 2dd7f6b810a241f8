"""
Product Service Event Consumers
===============================

Applies inventory adjustments published by the order component. Each
message is handled in its own database session and transaction.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.settings import ProductSettings, get_settings
from ..services.inventory_service import InventoryService
from ..utils.logging import setup_product_logging as setup_logging
from .base import BaseEvent, EventHandler, MalformedEventError
from .base.kafka_client import KafkaEventSubscriber
from .schemas import InventoryAdjustmentData, ProductEventType

logger = setup_logging(
    "product_service.events.consumers", log_level=get_settings().LOG_LEVEL
)


class InventoryAdjustmentHandler(EventHandler):
    """Apply one relative inventory change per event, at most once per event id"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def handle(self, event: BaseEvent) -> None:
        try:
            data = InventoryAdjustmentData.model_validate(event.data)
        except PydanticValidationError as e:
            raise MalformedEventError(
                f"Invalid inventory adjustment payload: {e.error_count()} error(s)"
            ) from e

        async with self.session_maker() as session:
            applied = await InventoryService(session).apply_adjustment(
                event_id=event.event_id,
                product_id=data.product_id,
                quantity=data.quantity,
                is_increase=data.is_increase,
                correlation_id=event.correlation_id,
            )

        logger.debug(
            "Handled inventory adjustment event",
            extra={
                "event_id": event.event_id,
                "product_id": data.product_id,
                "duplicate": not applied,
            },
        )


class ProductEventConsumer:
    """Product service event consumer using shared subscriber"""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_settings: Optional[ProductSettings] = None,
        subscriber: Optional[KafkaEventSubscriber] = None,
    ):
        self.settings = app_settings or get_settings()
        self.session_maker = session_maker
        self.subscriber = subscriber or KafkaEventSubscriber(
            bootstrap_servers=self.settings.KAFKA_BOOTSTRAP_SERVERS,
            group_id=self.settings.KAFKA_GROUP_ID,
            client_id=f"{self.settings.SERVICE_NAME}-consumer",
        )

    async def start(self) -> None:
        """Start consuming inventory adjustments"""
        await self.subscriber.start()
        await self.subscriber.subscribe(
            topic=self.settings.KAFKA_TOPIC_INVENTORY_UPDATES,
            event_type=ProductEventType.INVENTORY_UPDATE,
            handler=InventoryAdjustmentHandler(self.session_maker),
        )

        logger.info(
            "Started consuming product service events",
            extra={
                "subscriptions": [
                    f"{self.settings.KAFKA_TOPIC_INVENTORY_UPDATES}:"
                    f"{ProductEventType.INVENTORY_UPDATE}"
                ]
            },
        )

    async def stop(self) -> None:
        """Stop event consumer"""
        await self.subscriber.stop()
