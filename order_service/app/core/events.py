"""
Order Service Event Management
Builds and tears down the Kafka event publishing infrastructure.
"""

from typing import Optional, Tuple

from ..events.base.kafka_client import KafkaEventPublisher
from ..events.producers import OrderEventProducer
from ..utils.logging import setup_order_logging
from .settings import OrderSettings, get_settings

logger = setup_order_logging("order_service.core.events", log_level=get_settings().LOG_LEVEL)


async def init_events(
    settings: OrderSettings,
) -> Tuple[Optional[KafkaEventPublisher], Optional[OrderEventProducer]]:
    """Initialize event publishing infrastructure"""
    if not settings.ENABLE_EVENT_PUBLISHING:
        logger.info("Event publishing disabled by configuration")
        return None, None

    kafka_publisher = KafkaEventPublisher(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        client_id=f"{settings.SERVICE_NAME}-producer",
        default_topic=settings.KAFKA_TOPIC_ORDER_UPDATES,
        max_retries=10,
        retry_delay=2.0,
    )
    await kafka_publisher.start(timeout=30.0)

    producer = OrderEventProducer(
        kafka_publisher,
        inventory_topic=settings.KAFKA_TOPIC_INVENTORY_UPDATES,
        order_topic=settings.KAFKA_TOPIC_ORDER_UPDATES,
    )
    logger.info(
        "Event publishing infrastructure initialized",
        extra={"connected": kafka_publisher.is_connected},
    )
    return kafka_publisher, producer


async def close_events(kafka_publisher: Optional[KafkaEventPublisher]) -> None:
    """Close event publishing infrastructure"""
    if kafka_publisher:
        await kafka_publisher.stop()
        logger.info("Event publishing infrastructure closed")
