"""Kafka -> telemetry bus bridge.

Each JSON message on the configured topics is validated as a
TelemetryMessage and re-emitted on the bus, where attached reporters pick
it up exactly as if the event had been raised in-process.
"""

from __future__ import annotations

import json

from confluent_kafka import Consumer, KafkaError, KafkaException
from pydantic import ValidationError
from reporter.core.config import settings
from reporter.core.logger import get_logger
from reporter.core.metrics import KAFKA_INVALID_RECORDS, KAFKA_RECORDS
from reporter.domain.messages import TelemetryMessage
from reporter.infrastructure.telemetry.bus import TelemetryBus, default_bus

logger = get_logger("reporter.kafka.source")


class KafkaEventSource:
    def __init__(self, topics: list[str], bus: TelemetryBus | None = None):
        self.consumer = Consumer(
            {
                "bootstrap.servers": settings.kafka_bootstrap_servers,
                "group.id": settings.reporter_kafka_consumer_group,
                "auto.offset.reset": "latest",
                "enable.auto.commit": False,
            }
        )
        self.consumer.subscribe(topics)
        self.bus = bus or default_bus
        self._uncommitted = 0

    def poll_once(self) -> int:
        """Consume up to one batch and emit it. Returns events emitted."""
        messages = self.consumer.consume(
            num_messages=settings.reporter_poll_batch_size, timeout=1.0
        )
        if not messages:
            return 0
        emitted = 0
        for msg in messages:
            if msg.error():
                if msg.error().code() == KafkaError._PARTITION_EOF:
                    continue
                raise KafkaException(msg.error())
            KAFKA_RECORDS.inc()
            self._uncommitted += 1
            try:
                message = TelemetryMessage.model_validate(
                    json.loads(msg.value().decode("utf-8"))
                )
            except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
                KAFKA_INVALID_RECORDS.inc()
                logger.warning(
                    "invalid_telemetry_message",
                    extra={"topic": msg.topic(), "error": str(exc)},
                )
                continue
            self.bus.execute(message.event_name, message.measurements, message.metadata)
            emitted += 1
        return emitted

    def commit(self) -> None:
        if not self._uncommitted:
            return
        self.consumer.commit(asynchronous=False)
        self._uncommitted = 0

    def close(self) -> None:
        self.consumer.close()
