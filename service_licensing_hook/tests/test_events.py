"""
Unit tests for whitelist event publishing.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from service_licensing_hook.app.whitelist.events import WhitelistEventPublisher
from service_licensing_hook.app.whitelist.models import (
    WhitelistEvent, WhitelistEventKind, WhitelistTarget
)
from shared.test_helpers import make_address


def _event(kind=WhitelistEventKind.WHITELISTED):
    target = WhitelistTarget.create(make_address(1), make_address(2), 3, make_address(4))
    return WhitelistEvent(kind, target, "0xabc")


class TestWhitelistEventPublisher:
    """Test cases for WhitelistEventPublisher."""

    @pytest.fixture
    def publisher(self):
        return WhitelistEventPublisher()

    def test_sync_listener_runs_inline(self, publisher):
        """Test that plain callables see the event before publish returns."""
        received = []
        publisher.subscribe(received.append)

        event = _event()
        publisher.publish(event)

        assert received == [event]

    def test_failing_listener_does_not_block_others(self, publisher):
        """Test that one broken listener neither raises nor starves later listeners."""
        received = []

        def broken(event):
            raise RuntimeError("listener down")

        publisher.subscribe(broken)
        publisher.subscribe(received.append)

        publisher.publish(_event())

        assert len(received) == 1

    def test_unsubscribe(self, publisher):
        """Test that unsubscribed listeners stop receiving events."""
        received = []
        listener = publisher.subscribe(received.append)
        publisher.unsubscribe(listener)
        publisher.unsubscribe(listener)

        publisher.publish(_event())

        assert received == []

    @pytest.mark.asyncio
    async def test_async_listener_delivered_after_drain(self, publisher):
        """Test that coroutine listeners are tracked until delivered."""
        received = []

        async def slow_listener(event):
            await asyncio.sleep(0.01)
            received.append(event.kind)

        publisher.subscribe(slow_listener)
        publisher.publish(_event(WhitelistEventKind.REMOVED))

        assert publisher.pending == 1
        await publisher.drain()

        assert received == [WhitelistEventKind.REMOVED]
        assert publisher.pending == 0

    @pytest.mark.asyncio
    async def test_async_listener_failure_is_contained(self):
        """Test that a failing async listener is logged and forgotten."""
        metrics = MagicMock()
        publisher = WhitelistEventPublisher(metrics)

        async def failing_listener(event):
            raise RuntimeError("sink down")

        publisher.subscribe(failing_listener)
        publisher.publish(_event())
        await publisher.drain()

        assert publisher.pending == 0
        metrics.record_error.assert_called_once_with("whitelist_listener_failed")

    def test_publish_records_business_event(self):
        """Test that each event is counted by kind."""
        metrics = MagicMock()
        publisher = WhitelistEventPublisher(metrics)

        publisher.publish(_event(WhitelistEventKind.WHITELISTED))

        metrics.record_business_event.assert_called_once_with("minter_whitelisted")

    def test_event_payload(self):
        """Test the serialized event shape."""
        payload = _event().to_dict()

        assert payload["kind"] == "whitelisted"
        assert payload["terms_id"] == "3"
        assert payload["minter_id"] == make_address(4)
        assert payload["authorization_key"] == "0xabc"
        assert "emitted_at" in payload
