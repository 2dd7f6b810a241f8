import asyncio
import json
from typing import Any, Dict, List

from aiokafka import AIOKafkaConsumer  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore
from aiokafka.structs import TopicPartition  # type: ignore

from ...core.settings import get_settings
from ...utils.logging import setup_product_logging as setup_logging
from . import BaseEvent, EventHandler, EventSubscriber, MalformedEventError

logger = setup_logging(
    "product_service.events.kafka", log_level=get_settings().LOG_LEVEL
)


class KafkaEventSubscriber(EventSubscriber):
    """Product Service Kafka subscriber with connection retry logic

    Offsets are committed by hand, one message at a time, and only after
    every handler for the message has finished. A failing handler rewinds
    the partition to the same message so it is delivered again.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        group_id: str,
        client_id: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        handler_retry_delay: float = 1.0,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.handler_retry_delay = handler_retry_delay
        self.consumers: Dict[str, AIOKafkaConsumer] = {}
        self.handlers: Dict[str, List[EventHandler]] = {}
        self._tasks: Dict[str, "asyncio.Task[None]"] = {}
        self.running = False
        self.is_connected = False

    async def start(self, timeout: float = 30.0) -> None:
        """Start event subscriber with retry logic"""
        for attempt in range(self.max_retries):
            try:
                logger.info(
                    "Attempting Kafka subscriber connection",
                    extra={
                        "attempt": attempt + 1,
                        "max_retries": self.max_retries,
                        "operation": "subscriber_connect",
                    },
                )

                # Test connection by creating a temporary consumer
                test_consumer = AIOKafkaConsumer(
                    bootstrap_servers=self.bootstrap_servers,
                    group_id=f"{self.group_id}-health-check",
                    client_id=f"{self.client_id}-health-check",
                )
                await asyncio.wait_for(test_consumer.start(), timeout=timeout)  # type: ignore
                await test_consumer.stop()  # type: ignore

                self.running = True
                self.is_connected = True
                logger.info("Kafka subscriber connected successfully")
                return

            except (KafkaConnectionError, asyncio.TimeoutError) as e:
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka subscriber connection attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay} seconds..."
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)

        logger.error(
            "Failed to connect Kafka subscriber after all retries. "
            "Running in degraded mode (no event consumption)"
        )
        self.running = False
        self.is_connected = False

    async def stop(self) -> None:
        """Cancel the consume loops, wait for them, then stop all consumers"""
        self.running = False
        self.is_connected = False

        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        for topic, consumer in self.consumers.items():
            try:
                await consumer.stop()  # type: ignore
                logger.info(
                    "Stopped Kafka consumer for topic",
                    extra={"topic": topic, "operation": "stop_consumer"},
                )
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka consumer",
                    extra={
                        "topic": topic,
                        "error": str(e),
                        "operation": "stop_consumer_error",
                    },
                )

        self.consumers.clear()
        logger.info("All Kafka consumers stopped")

    async def subscribe(self, topic: str, event_type: str, handler: EventHandler) -> None:
        """Subscribe to an event type with connection handling"""
        if not self.is_connected:
            logger.warning(f"Cannot subscribe to {event_type} - Kafka not connected")
            return

        self.handlers.setdefault(event_type, []).append(handler)

        if topic in self.consumers:
            return

        try:
            consumer = AIOKafkaConsumer(
                topic,
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                client_id=f"{self.client_id}-{topic}",
                enable_auto_commit=False,
                auto_offset_reset="earliest",
            )
            await consumer.start()  # type: ignore
        except KafkaError as e:
            logger.error(
                "Failed to subscribe to Kafka topic",
                extra={"topic": topic, "error": str(e), "operation": "subscribe_failed"},
            )
            return

        self.consumers[topic] = consumer
        self._tasks[topic] = asyncio.create_task(self._consume_messages(topic, consumer))
        logger.info(
            "Subscribed to event type on Kafka topic",
            extra={"event_type": event_type, "topic": topic, "operation": "subscribe"},
        )

    def _decode(self, raw: Any) -> BaseEvent:
        """Parse the wire envelope; raises ValueError for anything malformed."""
        payload = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
        if not isinstance(payload, dict) or "event_id" not in payload:
            raise ValueError("event envelope without event_id")
        return BaseEvent.model_validate(payload)

    async def _dispatch(self, topic: str, message: Any) -> None:
        try:
            event = self._decode(message.value)
        except ValueError as e:
            logger.error(
                "Skipping malformed Kafka message",
                extra={
                    "topic": topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "error": str(e),
                    "operation": "malformed_message",
                },
            )
            return

        handlers = self.handlers.get(event.event_type, [])
        if not handlers:
            logger.debug(
                "No handler for event type",
                extra={"topic": topic, "event_type": event.event_type},
            )
            return

        for handler in handlers:
            try:
                await handler.handle(event)
            except MalformedEventError as e:
                logger.error(
                    "Skipping event rejected by handler",
                    extra={
                        "topic": topic,
                        "event_id": event.event_id,
                        "event_type": event.event_type,
                        "error": str(e),
                        "operation": "malformed_event",
                    },
                )

    async def _handle_message(
        self, topic: str, consumer: AIOKafkaConsumer, message: Any
    ) -> bool:
        """Process one message and commit its offset.

        Returns False if processing failed and the partition was rewound.
        """
        partition = TopicPartition(message.topic, message.partition)
        try:
            await self._dispatch(topic, message)
        except Exception as e:
            logger.error(
                "Event handler error, message will be redelivered",
                exc_info=True,
                extra={
                    "topic": topic,
                    "partition": message.partition,
                    "offset": message.offset,
                    "error": str(e),
                    "operation": "handler_error",
                },
            )
            consumer.seek(partition, message.offset)
            await asyncio.sleep(self.handler_retry_delay)
            return False

        await consumer.commit({partition: message.offset + 1})  # type: ignore
        return True

    async def _consume_messages(self, topic: str, consumer: AIOKafkaConsumer) -> None:
        """Consume messages from a specific topic, one at a time"""
        try:
            while self.running:
                message = await consumer.getone()  # type: ignore
                await self._handle_message(topic, consumer, message)
        except KafkaError as e:
            logger.error(
                "Kafka consumer error",
                extra={"topic": topic, "error": str(e), "operation": "consumer_error"},
            )
