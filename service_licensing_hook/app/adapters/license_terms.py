"""
License terms client.

Looks up the per-unit minting fee of license terms registered under a
license template.
"""

from typing import Protocol

import httpx

from shared.errors import ExternalServiceError, ValidationError
from ..whitelist.models import parse_uint256
from .base import CollaboratorClient


class LicenseTermsProvider(Protocol):
    """Source of per-unit minting fees."""

    async def get_per_unit_minting_fee(self, template_id: str, terms_id: int) -> int:
        ...


class LicenseTermsClient(CollaboratorClient):
    """HTTP client for the license template registry."""

    collaborator = "license_terms"

    async def get_per_unit_minting_fee(self, template_id: str, terms_id: int) -> int:
        """Return the minting fee for one license token under the given terms."""
        url = f"{self.base_url}/license-templates/{template_id}/terms/{terms_id}"

        async def _fetch_fee():
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)

            # Unknown terms are the caller's mistake, not a registry outage.
            if response.status_code == 404:
                raise ValidationError(
                    "unknown license terms",
                    details={"template_id": template_id, "terms_id": str(terms_id)},
                    code="UNKNOWN_LICENSE_TERMS"
                )
            if response.status_code != 200:
                raise self._unexpected_status(response)

            body = self._json_object(response, "license terms")
            try:
                return parse_uint256(body.get("minting_fee"))
            except ValueError as e:
                raise ExternalServiceError(self.collaborator, "malformed minting fee", details={"error": str(e)})

        return await self._guarded(_fetch_fee)
