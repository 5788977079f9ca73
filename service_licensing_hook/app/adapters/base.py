"""
Common plumbing for HTTP collaborators.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError
from shared.metrics import MetricsCollector
from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException


class CollaboratorClient:
    """Base for clients of the access controller and the license registry.

    Each request opens its own ``httpx.AsyncClient``. Transport errors and
    unusable answers count against the circuit; every failure reaches the
    caller as ``ExternalServiceError`` so the hook never guesses an answer.
    """

    collaborator = "collaborator"

    def __init__(self,
                 base_url: str,
                 timeout: float = 5.0,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 metrics: Optional[MetricsCollector] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger(f"licensing_hook.{self.collaborator}")
        self.circuit_breaker = CircuitBreaker(
            self.collaborator,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=(httpx.HTTPError, ExternalServiceError),
            metrics=metrics
        )

    def _unexpected_status(self, response: httpx.Response) -> ExternalServiceError:
        return ExternalServiceError(
            self.collaborator,
            f"unexpected status {response.status_code}",
            details={"status_code": response.status_code}
        )

    def _json_object(self, response: httpx.Response, what: str) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError(self.collaborator, f"malformed {what} response", details={"error": str(e)})
        if not isinstance(body, dict):
            raise ExternalServiceError(
                self.collaborator,
                f"malformed {what} response",
                details={"body_type": type(body).__name__}
            )
        return body

    async def _guarded(self, request: Callable[[], Awaitable[Any]]) -> Any:
        try:
            if self.metrics:
                with self.metrics.time_collaborator_call(self.collaborator):
                    return await self.circuit_breaker.call(request)
            return await self.circuit_breaker.call(request)

        except CircuitBreakerOpenException as e:
            self.logger.warning("Collaborator circuit open", retry_in=round(e.retry_in, 1))
            raise ExternalServiceError(self.collaborator, "unavailable", details={"error": str(e)})
        except httpx.HTTPError as e:
            self.logger.error("Collaborator HTTP error", error=str(e), error_type=type(e).__name__)
            raise ExternalServiceError(self.collaborator, "unavailable", details={"http_error": str(e)})
