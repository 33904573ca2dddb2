"""
Order event publisher.

Events are emitted after the order transaction has committed. A broker that is
down or never started loses the event; the order itself is unaffected.
"""
import json
from typing import Any

from aiokafka import AIOKafkaProducer
from loguru import logger

from app.core.metrics import (
    KAFKA_PRODUCER_START_TOTAL,
    KAFKA_PRODUCER_STOP_TOTAL,
    KAFKA_PRODUCER_MESSAGES_TOTAL,
)
from env import KAFKA_BROKER, KAFKA_ORDER_TOPIC, SERVICE_NAME


def _encode(event: dict[str, Any]) -> bytes:
    return json.dumps(event, ensure_ascii=False, default=str).encode("utf-8")


class OrderEventProducer:
    def __init__(self, topic: str = KAFKA_ORDER_TOPIC):
        self.topic = topic
        self._producer: AIOKafkaProducer | None = None

    @property
    def started(self) -> bool:
        return self._producer is not None

    async def start(self) -> None:
        if self._producer is not None:
            return
        producer = AIOKafkaProducer(bootstrap_servers=KAFKA_BROKER, value_serializer=_encode)
        try:
            await producer.start()
        except Exception:
            KAFKA_PRODUCER_START_TOTAL.labels(service=SERVICE_NAME, result="error").inc()
            raise
        self._producer = producer
        KAFKA_PRODUCER_START_TOTAL.labels(service=SERVICE_NAME, result="success").inc()
        logger.info("Order event producer connected to {broker}, topic='{topic}'", broker=KAFKA_BROKER, topic=self.topic)

    async def stop(self) -> None:
        if self._producer is None:
            return
        await self._producer.stop()
        self._producer = None
        KAFKA_PRODUCER_STOP_TOTAL.labels(service=SERVICE_NAME, result="success").inc()
        logger.info("Order event producer stopped")

    async def publish(self, event: dict[str, Any]) -> bool:
        """Sends one order event keyed by order id; returns whether it was delivered."""
        key = event.get("order_id")
        if self._producer is None:
            KAFKA_PRODUCER_MESSAGES_TOTAL.labels(service=SERVICE_NAME, result="not_started").inc()
            logger.warning(
                "Order event {event} for order '{order_id}' dropped: producer not started",
                event=event.get("event"),
                order_id=key,
            )
            return False

        try:
            await self._producer.send_and_wait(
                self.topic,
                value=event,
                key=key.encode() if key else None,
            )
        except Exception:
            KAFKA_PRODUCER_MESSAGES_TOTAL.labels(service=SERVICE_NAME, result="error").inc()
            logger.exception(
                "Order event {event} for order '{order_id}' could not be delivered",
                event=event.get("event"),
                order_id=key,
            )
            return False

        KAFKA_PRODUCER_MESSAGES_TOTAL.labels(service=SERVICE_NAME, result="success").inc()
        logger.info("Order event {event} published for order '{order_id}'", event=event.get("event"), order_id=key)
        return True


kafka_producer = OrderEventProducer()
