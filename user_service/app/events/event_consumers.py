"""
User Service Event Consumers
============================

Projects order status events published by the order component into the
per-user order history.
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.settings import UserSettings, get_settings
from ..services.order_history_service import OrderHistoryService
from ..utils.logging import setup_user_logging as setup_logging
from .base import BaseEvent, EventHandler, MalformedEventError
from .base.kafka_client import KafkaEventSubscriber
from .schemas import OrderHistoryData, UserEventType

logger = setup_logging("user_service.events.consumers", log_level=get_settings().LOG_LEVEL)


class OrderHistoryProjector(EventHandler):
    """Append one order-history row per order_update event"""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def handle(self, event: BaseEvent) -> None:
        try:
            data = OrderHistoryData.model_validate(event.data)
        except PydanticValidationError as e:
            raise MalformedEventError(
                f"Invalid order history payload: {e.error_count()} error(s)"
            ) from e

        async with self.session_maker() as session:
            await OrderHistoryService(session).record_order_update(
                event_id=event.event_id,
                user_id=data.user_id,
                order_id=data.order_id,
                total=data.total,
                status=data.status,
                created_at=data.created_at,
                correlation_id=event.correlation_id,
            )


class UserEventConsumer:
    """User service event consumer using shared subscriber"""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        app_settings: Optional[UserSettings] = None,
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
        """Start consuming order updates"""
        await self.subscriber.start()
        await self.subscriber.subscribe(
            topic=self.settings.KAFKA_TOPIC_ORDER_UPDATES,
            event_type=UserEventType.ORDER_UPDATE,
            handler=OrderHistoryProjector(self.session_maker),
        )
        logger.info(
            "Started consuming user service events",
            extra={
                "subscriptions": [
                    f"{self.settings.KAFKA_TOPIC_ORDER_UPDATES}:{UserEventType.ORDER_UPDATE}"
                ]
            },
        )

    async def stop(self) -> None:
        """Stop event consumer"""
        await self.subscriber.stop()
