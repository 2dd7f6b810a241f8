import asyncio
import json
from typing import Optional, Set

from aiokafka import AIOKafkaProducer  # type: ignore
from aiokafka.admin import AIOKafkaAdminClient, NewTopic  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore

from ...core.settings import get_settings
from ...utils.logging import setup_cart_logging
from . import BaseEvent, EventPublisher

logger = setup_cart_logging("cart_service.events.kafka", log_level=get_settings().LOG_LEVEL)


class KafkaEventPublisher(EventPublisher):
    """Cart Service Kafka publisher.

    If the broker cannot be reached at startup the publisher runs degraded:
    events are logged instead of sent.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        default_topic: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.default_topic = default_topic
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._known_topics: Set[str] = set()

    async def ensure_topic_exists(self, topic_name: str) -> None:
        if topic_name in self._known_topics:
            return

        admin_client = AIOKafkaAdminClient(bootstrap_servers=self.bootstrap_servers)
        await admin_client.start()  # type: ignore
        try:
            if topic_name not in await admin_client.list_topics():
                await admin_client.create_topics(
                    [NewTopic(name=topic_name, num_partitions=1, replication_factor=1)]
                )
                logger.info("Created Kafka topic", extra={"topic": topic_name})
            self._known_topics.add(topic_name)
        except KafkaError as e:
            logger.warning(
                "Error ensuring Kafka topic exists",
                extra={"topic": topic_name, "error": str(e)},
            )
        finally:
            await admin_client.close()  # type: ignore

    async def start(self, timeout: float = 30.0) -> None:
        """Connect, backing off exponentially between attempts"""
        self.producer = AIOKafkaProducer(
            bootstrap_servers=self.bootstrap_servers,
            client_id=self.client_id,
            value_serializer=lambda x: json.dumps(x, default=str).encode("utf-8"),  # type: ignore
            key_serializer=lambda x: x.encode("utf-8") if x else None,  # type: ignore
            acks="all",
        )

        for attempt in range(self.max_retries):
            try:
                await asyncio.wait_for(self.producer.start(), timeout=timeout)  # type: ignore
                self.is_connected = True
                logger.info("Connected to Kafka", extra={"attempt": attempt + 1})
                return
            except (KafkaConnectionError, asyncio.TimeoutError) as e:
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka connection attempt {attempt + 1} failed: {e}",
                    extra={"retry_in_seconds": delay},
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)

        logger.error(
            f"Failed to connect to Kafka after {self.max_retries} attempts; "
            "events will be logged but not published"
        )

    async def stop(self) -> None:
        if self.producer is None:
            return
        try:
            await self.producer.stop()  # type: ignore
            logger.info("Kafka producer stopped")
        except KafkaError as e:
            logger.warning("Error stopping Kafka producer", extra={"error": str(e)})
        finally:
            self.producer = None
            self.is_connected = False

    async def publish(self, event: BaseEvent, topic: Optional[str] = None) -> None:
        if not self.is_connected or self.producer is None:
            logger.warning(
                f"Kafka not available, logging event instead: {event.event_type}",
                extra={"event_id": event.event_id, "event": event.model_dump(mode="json")},
            )
            return

        topic = topic or self.default_topic
        await self.ensure_topic_exists(topic)
        try:
            await self.producer.send_and_wait(  # type: ignore
                topic=topic,
                value=event.model_dump(mode="json"),
                key=event.correlation_id,
            )
        except KafkaError as e:
            logger.error(
                "Failed to publish event to Kafka",
                extra={
                    "event_id": event.event_id,
                    "event_type": event.event_type,
                    "topic": topic,
                    "error": str(e),
                },
            )
            raise
