"""
Kafka audit sink for whitelist events.
"""

import asyncio
import json
from typing import Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from shared.logging import get_logger
from shared.errors import LicensingAccessException
from ..whitelist.models import WhitelistEvent


class KafkaAuditSink:
    """Publishes whitelist events to a Kafka topic for audit and indexing.

    Registered as an async publisher listener, so each send runs as a
    background task in a worker thread. Delivery failures are logged and
    never reach the mutation that emitted the event.
    """

    def __init__(self, bootstrap_servers: str, topic: str):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.logger = get_logger("licensing_hook.kafka_audit")
        self.producer: Optional[KafkaProducer] = None

    async def start(self):
        """Start the Kafka producer."""
        try:
            self.producer = KafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                value_serializer=lambda x: json.dumps(x).encode('utf-8'),
                key_serializer=lambda x: x.encode('utf-8') if x else None,
                acks='all',
                linger_ms=10,
                max_block_ms=1000,
                compression_type='gzip'
            )
            self.logger.info("Kafka audit sink started", topic=self.topic)

        except KafkaError as e:
            self.logger.error("Failed to start Kafka audit sink", error=str(e))
            raise LicensingAccessException("KAFKA_PRODUCER_START_FAILED", str(e))

    async def stop(self):
        """Flush and close the producer."""
        if self.producer:
            producer, self.producer = self.producer, None
            await asyncio.to_thread(producer.flush)
            await asyncio.to_thread(producer.close)
            self.logger.info("Kafka audit sink stopped")

    async def __call__(self, event: WhitelistEvent):
        if not self.producer:
            self.logger.warning("Kafka audit sink not started, dropping event", authorization_key=event.authorization_key)
            return

        # send() can block on topic metadata for up to max_block_ms; keep it off the event loop.
        try:
            future = await asyncio.to_thread(
                self.producer.send,
                self.topic,
                value=event.to_dict(),
                key=event.authorization_key,
                headers=[("event_type", event.kind.value.encode('utf-8'))]
            )
        except KafkaError as e:
            self.logger.error("Kafka error sending whitelist event", topic=self.topic, error=str(e))
            return

        future.add_errback(
            lambda exc: self.logger.error(
                "Whitelist event delivery failed",
                topic=self.topic,
                authorization_key=event.authorization_key,
                error=str(exc)
            )
        )
