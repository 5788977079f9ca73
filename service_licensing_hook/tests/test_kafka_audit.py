"""
Unit tests for the Kafka audit sink.
"""

import asyncio
import threading

import pytest
from unittest.mock import MagicMock, patch

from kafka.errors import KafkaError, NoBrokersAvailable

from service_licensing_hook.app.adapters.kafka_audit import KafkaAuditSink
from service_licensing_hook.app.persistence import InMemoryWhitelistBackend
from service_licensing_hook.app.whitelist.events import WhitelistEventPublisher
from service_licensing_hook.app.whitelist.models import (
    WhitelistEvent, WhitelistEventKind, WhitelistTarget
)
from service_licensing_hook.app.whitelist.store import WhitelistStore
from shared.errors import LicensingAccessException
from shared.test_helpers import TestDataFactory, FakeAccessController, make_address


@pytest.fixture
def event():
    target = WhitelistTarget.create(make_address(1), make_address(2), 3, make_address(4))
    return WhitelistEvent(WhitelistEventKind.WHITELISTED, target, "0xfeed")


class TestKafkaAuditSink:
    """Test cases for KafkaAuditSink."""

    @pytest.fixture
    def sink(self):
        return KafkaAuditSink("localhost:9092", "licensing.whitelist.events")

    @pytest.mark.asyncio
    async def test_send_event(self, sink, event):
        """Test that events are keyed by authorization key."""
        with patch('service_licensing_hook.app.adapters.kafka_audit.KafkaProducer') as producer_cls:
            await sink.start()
            await sink(event)

            producer = producer_cls.return_value
            producer.send.assert_called_once_with(
                "licensing.whitelist.events",
                value=event.to_dict(),
                key="0xfeed",
                headers=[("event_type", b"whitelisted")]
            )
            producer.send.return_value.add_errback.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_failure(self, sink):
        """Test that broker unavailability fails start."""
        with patch('service_licensing_hook.app.adapters.kafka_audit.KafkaProducer',
                   side_effect=NoBrokersAvailable()):
            with pytest.raises(LicensingAccessException) as exc_info:
                await sink.start()

        assert exc_info.value.code == "KAFKA_PRODUCER_START_FAILED"

    @pytest.mark.asyncio
    async def test_event_dropped_when_not_started(self, sink, event):
        """Test that an unstarted sink drops events quietly."""
        await sink(event)

        assert sink.producer is None

    @pytest.mark.asyncio
    async def test_send_error_is_contained(self, sink, event):
        """Test that a send failure never propagates to the publisher."""
        with patch('service_licensing_hook.app.adapters.kafka_audit.KafkaProducer') as producer_cls:
            producer_cls.return_value.send.side_effect = KafkaError("buffer full")
            await sink.start()

            await sink(event)

    @pytest.mark.asyncio
    async def test_stop_flushes(self, sink):
        """Test that stop flushes and closes the producer."""
        producer = MagicMock()
        with patch('service_licensing_hook.app.adapters.kafka_audit.KafkaProducer', return_value=producer):
            await sink.start()
        await sink.stop()

        producer.flush.assert_called_once()
        producer.close.assert_called_once()
        assert sink.producer is None

    @pytest.mark.asyncio
    async def test_blocked_send_does_not_hold_mutation(self, sink):
        """Test that a send stuck on broker metadata leaves the whitelist mutation unaffected."""
        lf = TestDataFactory.create_license_fixture()
        minter = TestDataFactory.create_minters(1)[0]
        controller = FakeAccessController()
        controller.grant(lf.owner, lf.asset_id)
        publisher = WhitelistEventPublisher()
        store = WhitelistStore(InMemoryWhitelistBackend(), controller, publisher)

        release = threading.Event()

        def blocked_send(*args, **kwargs):
            release.wait(timeout=5)
            raise KafkaError("metadata not available")

        with patch('service_licensing_hook.app.adapters.kafka_audit.KafkaProducer') as producer_cls:
            producer_cls.return_value.send.side_effect = blocked_send
            await sink.start()
        publisher.subscribe(sink)

        key = await asyncio.wait_for(
            store.add_to_whitelist(lf.owner, lf.asset_id, lf.template_id, 1, minter), timeout=1
        )

        assert key == store.authorization_key(lf.asset_id, lf.template_id, 1, minter)
        assert publisher.pending == 1

        release.set()
        await publisher.drain()

        assert publisher.pending == 0
        producer_cls.return_value.send.assert_called_once()
