"""
Whitelist notifications.

Delivery is best effort: a failing or slow listener never affects the
mutation that produced the event.
"""

import asyncio
import functools
import inspect
from typing import Any, Callable, List, Optional, Set

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import add_span_event
from .models import WhitelistEvent

Listener = Callable[[WhitelistEvent], Any]


class WhitelistEventPublisher:
    """Fans whitelist events out to registered listeners.

    Plain callables run inline; coroutine results are scheduled as
    background tasks and tracked until they finish.
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.logger = get_logger("licensing_hook.events")
        self.metrics = metrics
        self._listeners: List[Listener] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: WhitelistEvent):
        """Deliver ``event`` to every listener. Never raises."""
        payload = event.to_dict()
        self.logger.info("Whitelist event", event_type=event.kind.value, **payload)
        add_span_event(f"whitelist.{event.kind.value}", **payload)
        if self.metrics:
            self.metrics.record_business_event(f"minter_{event.kind.value}")

        for listener in list(self._listeners):
            try:
                result = listener(event)
            except Exception as e:
                self._listener_failed(listener, event, e)
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(functools.partial(self._delivery_done, listener, event))

    def _delivery_done(self, listener: Listener, event: WhitelistEvent, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._listener_failed(listener, event, error)

    def _listener_failed(self, listener: Listener, event: WhitelistEvent, error: BaseException):
        self.logger.warning(
            "Whitelist listener failed",
            listener=getattr(listener, "__name__", repr(listener)),
            event_type=event.kind.value,
            authorization_key=event.authorization_key,
            error=str(error)
        )
        if self.metrics:
            self.metrics.record_error("whitelist_listener_failed")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for background deliveries scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
