"""
Caller whitelist store.
"""

from typing import Optional, Protocol

from shared.logging import get_logger, set_caller_context
from shared.metrics import MetricsCollector
from shared.tracing import trace_function, add_span_attributes
from ..adapters.access_controller import AccessController
from .errors import PermissionDeniedError, AlreadyWhitelistedError, NotInWhitelistError
from .events import WhitelistEventPublisher
from .keys import derive_authorization_key
from .models import WhitelistTarget, WhitelistEvent, WhitelistEventKind, require_address


# Operation names the access controller grants permissions for.
_GATED_OPERATIONS = {"add": "add_to_whitelist", "remove": "remove_from_whitelist"}


class WhitelistBackend(Protocol):
    async def contains(self, key: str) -> bool: ...

    async def set_if_absent(self, key: str) -> bool: ...

    async def delete_if_present(self, key: str) -> bool: ...

    async def count(self) -> int: ...


class WhitelistStore:
    """Owns the (asset, template, terms, minter) -> allowed mapping.

    Any key never added, or added and then removed, reads as not
    whitelisted. Adding an already whitelisted minter and removing one that
    is not whitelisted are both errors, not no-ops.
    """

    def __init__(self,
                 backend: WhitelistBackend,
                 access_controller: AccessController,
                 publisher: Optional[WhitelistEventPublisher] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.backend = backend
        self.access_controller = access_controller
        self.publisher = publisher or WhitelistEventPublisher(metrics)
        self.metrics = metrics
        self.logger = get_logger("licensing_hook.whitelist")

    @trace_function("whitelist.add")
    async def add_to_whitelist(self, caller: str, asset_id: str, template_id: str,
                               terms_id: int, minter_id: str) -> str:
        """Whitelist ``minter_id`` for the license terms of ``asset_id``.

        Returns the authorization key of the new entry.
        """
        target = WhitelistTarget.create(asset_id, template_id, terms_id, minter_id)
        caller = require_address(caller, "caller")
        await self._verify_permission(caller, target.asset_id, "add")

        key = derive_authorization_key(target)
        if not await self.backend.set_if_absent(key):
            self._record_mutation("add", "already_whitelisted")
            raise AlreadyWhitelistedError(target.minter_id)

        self._record_mutation("add", "ok")
        self.logger.info("Minter whitelisted", authorization_key=key, **target.to_dict())
        self.publisher.publish(WhitelistEvent(WhitelistEventKind.WHITELISTED, target, key))
        return key

    @trace_function("whitelist.remove")
    async def remove_from_whitelist(self, caller: str, asset_id: str, template_id: str,
                                    terms_id: int, minter_id: str) -> str:
        """Remove ``minter_id`` from the whitelist; returns the authorization key."""
        target = WhitelistTarget.create(asset_id, template_id, terms_id, minter_id)
        caller = require_address(caller, "caller")
        await self._verify_permission(caller, target.asset_id, "remove")

        key = derive_authorization_key(target)
        if not await self.backend.delete_if_present(key):
            self._record_mutation("remove", "not_in_whitelist")
            raise NotInWhitelistError(target.minter_id)

        self._record_mutation("remove", "ok")
        self.logger.info("Minter removed from whitelist", authorization_key=key, **target.to_dict())
        self.publisher.publish(WhitelistEvent(WhitelistEventKind.REMOVED, target, key))
        return key

    async def is_whitelisted(self, asset_id: str, template_id: str, terms_id: int, minter_id: str) -> bool:
        return await self.backend.contains(self.authorization_key(asset_id, template_id, terms_id, minter_id))

    def authorization_key(self, asset_id: str, template_id: str, terms_id: int, minter_id: str) -> str:
        return derive_authorization_key(WhitelistTarget.create(asset_id, template_id, terms_id, minter_id))

    async def entry_count(self) -> int:
        return await self.backend.count()

    async def _verify_permission(self, caller: str, asset_id: str, mutation: str):
        set_caller_context(caller=caller, ip_id=asset_id)
        add_span_attributes(**{"whitelist.caller": caller, "whitelist.asset_id": asset_id})

        # An IP asset always acts for itself.
        if caller == asset_id:
            return

        if not await self.access_controller.check_permission(caller, asset_id, _GATED_OPERATIONS[mutation]):
            self._record_mutation(mutation, "permission_denied")
            raise PermissionDeniedError(caller, asset_id)

    def _record_mutation(self, operation: str, outcome: str):
        if self.metrics:
            self.metrics.record_whitelist_mutation(operation, outcome)
