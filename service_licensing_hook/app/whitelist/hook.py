"""
Licensing hook entry points.

The licensing module calls these synchronously before minting license
tokens, before registering a derivative, and to predict minting fees.
"""

from typing import Any, Dict, Optional

from shared.errors import ExternalServiceError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import trace_function, add_span_attributes
from ..adapters.license_terms import LicenseTermsProvider
from .errors import NotWhitelistedError, FeeOverflowError
from .models import MAX_UINT256, require_address, require_uint256
from .store import WhitelistStore

HOOK_NAME = "CALLER_WHITELIST_LICENSING_HOOK"

SUPPORTED_INTERFACES = frozenset({"IERC165", "IModule", "ILicensingHook"})


class CallerWhitelistHook:
    """Licensing hook that only lets whitelisted callers mint.

    The whitelist gates the caller, never the receiver: a whitelisted
    caller may mint to any receiver. All three entry points price through
    ``_calculate_fee`` so predictions never drift from actual charges.
    """

    def __init__(self,
                 store: WhitelistStore,
                 terms_provider: LicenseTermsProvider,
                 metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.terms_provider = terms_provider
        self.metrics = metrics
        self.logger = get_logger("licensing_hook.hook")

    @trace_function("hook.before_mint_license_tokens")
    async def before_mint_license_tokens(self, caller: str, asset_id: str, template_id: str,
                                         terms_id: int, amount: int, receiver: str,
                                         hook_data: bytes = b"") -> int:
        """Authorize a mint by ``caller`` and return the total minting fee."""
        await self._require_whitelisted("before_mint", caller, asset_id, template_id, terms_id)
        fee = await self._calculate_fee(template_id, terms_id, amount)
        self._record_decision("before_mint", "allowed")
        self.logger.info(
            "Mint authorized",
            caller=caller,
            receiver=receiver,
            asset_id=asset_id,
            amount=str(amount),
            total_minting_fee=str(fee)
        )
        return fee

    @trace_function("hook.before_register_derivative")
    async def before_register_derivative(self, caller: str, child_id: str, parent_asset_id: str,
                                         template_id: str, terms_id: int,
                                         hook_data: bytes = b"") -> int:
        """Authorize linking ``child_id`` to ``parent_asset_id``; priced as one token."""
        await self._require_whitelisted("before_register_derivative", caller, parent_asset_id, template_id, terms_id)
        fee = await self._calculate_fee(template_id, terms_id, 1)
        self._record_decision("before_register_derivative", "allowed")
        self.logger.info(
            "Derivative registration authorized",
            caller=caller,
            child_id=child_id,
            parent_asset_id=parent_asset_id,
            total_minting_fee=str(fee)
        )
        return fee

    @trace_function("hook.calculate_minting_fee")
    async def calculate_minting_fee(self, caller: str, asset_id: str, template_id: str,
                                    terms_id: int, amount: int, receiver: str,
                                    hook_data: bytes = b"") -> int:
        """Predict the fee ``before_mint_license_tokens`` would charge.

        No whitelist check and no state change.
        """
        return await self._calculate_fee(template_id, terms_id, amount)

    async def _require_whitelisted(self, entry_point: str, caller: str, asset_id: str,
                                   template_id: str, terms_id: int):
        if not await self.store.is_whitelisted(asset_id, template_id, terms_id, caller):
            self._record_decision(entry_point, "not_whitelisted")
            self.logger.warning("Caller not whitelisted", entry_point=entry_point, caller=caller, asset_id=asset_id)
            raise NotWhitelistedError(caller)

    async def _calculate_fee(self, template_id: str, terms_id: int, amount: int) -> int:
        amount = require_uint256(amount, "amount")
        terms_id = require_uint256(terms_id, "terms_id")
        template_id = require_address(template_id, "template_id")

        per_unit_fee = await self.terms_provider.get_per_unit_minting_fee(template_id, terms_id)
        if isinstance(per_unit_fee, bool) or not isinstance(per_unit_fee, int) or not 0 <= per_unit_fee <= MAX_UINT256:
            raise ExternalServiceError("license_terms", "invalid per-unit minting fee",
                                       details={"per_unit_fee": repr(per_unit_fee)})

        total = per_unit_fee * amount
        if total > MAX_UINT256:
            raise FeeOverflowError(per_unit_fee, amount)
        add_span_attributes(**{"hook.amount": str(amount), "hook.total_minting_fee": str(total)})
        return total

    def _record_decision(self, entry_point: str, decision: str):
        if self.metrics:
            self.metrics.record_hook_decision(entry_point, decision)

    @staticmethod
    def supports_interface(name: str) -> bool:
        return name in SUPPORTED_INTERFACES

    @staticmethod
    def describe() -> Dict[str, Any]:
        """Static capability descriptor advertised to hosts."""
        return {
            "name": HOOK_NAME,
            "interfaces": sorted(SUPPORTED_INTERFACES),
            "entry_points": [
                "before_mint_license_tokens",
                "before_register_derivative",
                "calculate_minting_fee",
            ],
        }
