"""
Access controller client.

The access controller answers whether an identity may act on behalf of an
IP asset for a given module operation. Only its boolean answer is used.
"""

from typing import Optional, Protocol

import httpx

from shared.errors import ExternalServiceError
from shared.metrics import MetricsCollector
from .base import CollaboratorClient


class AccessController(Protocol):
    """Delegated-permission authority consulted before whitelist mutations."""

    async def check_permission(self, identity: str, asset_id: str, operation: Optional[str] = None) -> bool:
        ...


class AccessControllerClient(CollaboratorClient):
    """HTTP client for the access controller service."""

    collaborator = "access_controller"

    def __init__(self,
                 base_url: str,
                 hook_address: str,
                 timeout: float = 5.0,
                 failure_threshold: int = 3,
                 recovery_timeout: float = 30.0,
                 metrics: Optional[MetricsCollector] = None):
        super().__init__(base_url, timeout, failure_threshold, recovery_timeout, metrics)
        self.hook_address = hook_address

    async def check_permission(self, identity: str, asset_id: str, operation: Optional[str] = None) -> bool:
        """Ask whether ``identity`` may call ``operation`` on this hook for ``asset_id``."""
        payload = {
            "ip_id": asset_id,
            "signer": identity,
            "to": self.hook_address,
            "func": operation,
        }

        async def _check_permission():
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/permissions/check", json=payload)

            if response.status_code != 200:
                raise self._unexpected_status(response)

            granted = self._json_object(response, "permission").get("granted")
            if not isinstance(granted, bool):
                raise ExternalServiceError(
                    self.collaborator,
                    "malformed permission response",
                    details={"granted": repr(granted)}
                )
            return granted

        return await self._guarded(_check_permission)
