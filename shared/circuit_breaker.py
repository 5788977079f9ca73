"""
Circuit breaker for calls to external collaborators.

The breaker never retries: while OPEN every call fails immediately with
CircuitBreakerOpenException, and after ``recovery_timeout`` a single
HALF_OPEN probe decides whether the circuit closes again.
"""

import time
from enum import Enum
from typing import Dict, Any, Callable, Awaitable, Optional, Tuple, Type, Union

from shared.logging import get_logger
from shared.metrics import MetricsCollector


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised when a call is blocked by an open circuit."""

    def __init__(self, name: str, retry_in: float):
        self.name = name
        self.retry_in = retry_in
        super().__init__(f"circuit '{name}' is open, next probe in {retry_in:.1f}s")


class CircuitBreaker:
    """Trips after ``failure_threshold`` consecutive expected failures."""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 expected_exception: Union[Type[BaseException], Tuple[Type[BaseException], ...]] = Exception,
                 metrics: Optional[MetricsCollector] = None):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.metrics = metrics
        self.logger = get_logger(f"circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._consecutive_failures = 0
        self._opened_at = 0.0

    def _transition(self, state: CircuitBreakerState):
        if state == self._state:
            return
        self.logger.info("Circuit state changed", circuit=self.name, previous=self._state.value, current=state.value)
        self._state = state
        if self.metrics:
            self.metrics.record_circuit_state(self.name, state == CircuitBreakerState.OPEN)

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run ``func`` unless the circuit is open.

        Only ``expected_exception`` counts as a failure; anything else
        propagates without touching the breaker state.
        """
        if self._state == CircuitBreakerState.OPEN:
            elapsed = time.monotonic() - self._opened_at
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenException(self.name, self.recovery_timeout - elapsed)
            self._transition(CircuitBreakerState.HALF_OPEN)

        try:
            result = await func(*args, **kwargs)
        except self.expected_exception:
            self._on_failure()
            raise

        self._consecutive_failures = 0
        self._transition(CircuitBreakerState.CLOSED)
        return result

    def _on_failure(self):
        self._consecutive_failures += 1
        probe_failed = self._state == CircuitBreakerState.HALF_OPEN
        if probe_failed or self._consecutive_failures >= self.failure_threshold:
            self._opened_at = time.monotonic()
            self.logger.warning(
                "Circuit opened",
                circuit=self.name,
                consecutive_failures=self._consecutive_failures,
                probe_failed=probe_failed
            )
            self._transition(CircuitBreakerState.OPEN)

    def get_state(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self._state.value,
            "consecutive_failures": self._consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }

    def is_open(self) -> bool:
        return self._state == CircuitBreakerState.OPEN
