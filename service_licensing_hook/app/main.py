"""
Licensing hook service for the Licensing Access Layer.
"""

from typing import Dict, Optional
from datetime import datetime, timezone

from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import LicensingAccessException

from .adapters.access_controller import AccessController, AccessControllerClient
from .adapters.license_terms import LicenseTermsProvider, LicenseTermsClient
from .adapters.kafka_audit import KafkaAuditSink
from .persistence import InMemoryWhitelistBackend, RedisWhitelistBackend
from .whitelist.events import WhitelistEventPublisher
from .whitelist.hook import CallerWhitelistHook
from .whitelist.models import (
    WhitelistMutationRequest, WhitelistMutationResponse, WhitelistStatusResponse,
    BeforeMintRequest, BeforeRegisterDerivativeRequest, MintingFeeResponse
)
from .whitelist.store import WhitelistStore

SERVICE_NAME = "licensing_hook"
SERVICE_PORT = 8021


class LicensingHookService(BaseService):
    """Licensing hook service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 backend=None,
                 access_controller: Optional[AccessController] = None,
                 terms_provider: Optional[LicenseTermsProvider] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config)

        self.backend = backend or self._create_backend()
        self.access_controller = access_controller or AccessControllerClient(
            self.config.access_controller_url,
            hook_address=self.config.hook_address,
            timeout=self.config.collaborator_timeout_seconds,
            failure_threshold=self.config.circuit_failure_threshold,
            recovery_timeout=self.config.circuit_recovery_timeout,
            metrics=self.metrics
        )
        self.terms_provider = terms_provider or LicenseTermsClient(
            self.config.license_terms_url,
            timeout=self.config.collaborator_timeout_seconds,
            failure_threshold=self.config.circuit_failure_threshold,
            recovery_timeout=self.config.circuit_recovery_timeout,
            metrics=self.metrics
        )

        self.publisher = WhitelistEventPublisher(self.metrics)
        self.audit_sink = (
            KafkaAuditSink(self.config.kafka_bootstrap, self.config.whitelist_events_topic)
            if self.config.kafka_enabled else None
        )

        self.store = WhitelistStore(self.backend, self.access_controller, self.publisher, self.metrics)
        self.hook = CallerWhitelistHook(self.store, self.terms_provider, self.metrics)

        self._setup_hook_routes()

    def _create_backend(self):
        if self.config.whitelist_backend == "redis":
            return RedisWhitelistBackend(self.config.redis_url, self.config.whitelist_key_prefix)
        if self.config.whitelist_backend == "memory":
            return InMemoryWhitelistBackend()
        raise LicensingAccessException(
            "INVALID_CONFIG",
            f"unknown whitelist backend: {self.config.whitelist_backend}"
        )

    def _setup_hook_routes(self):
        """Set up whitelist and hook routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Licensing Access Layer - Caller Whitelist Licensing Hook",
                "version": "1.0.0",
                "hook": self.hook.describe()
            }

        @self.app.get("/hook/supports-interface/{name}")
        async def supports_interface(name: str):
            """Capability query for hosts integrating the hook."""
            return {"interface": name, "supported": self.hook.supports_interface(name)}

        @self.app.post("/whitelist/add", response_model=WhitelistMutationResponse)
        async def add_to_whitelist(request: WhitelistMutationRequest):
            """Whitelist a minter for an IP asset's license terms."""
            key = await self.store.add_to_whitelist(
                request.caller, request.asset_id, request.template_id, request.terms_id, request.minter_id
            )
            return WhitelistMutationResponse(success=True, authorization_key=key)

        @self.app.post("/whitelist/remove", response_model=WhitelistMutationResponse)
        async def remove_from_whitelist(request: WhitelistMutationRequest):
            """Remove a minter from an IP asset's whitelist."""
            key = await self.store.remove_from_whitelist(
                request.caller, request.asset_id, request.template_id, request.terms_id, request.minter_id
            )
            return WhitelistMutationResponse(success=True, authorization_key=key)

        @self.app.get("/whitelist/check", response_model=WhitelistStatusResponse)
        async def is_whitelisted(
            asset_id: str = Query(..., description="Licensor IP asset"),
            template_id: str = Query(..., description="License template"),
            terms_id: str = Query(..., description="License terms id"),
            minter_id: str = Query(..., description="Minter to look up")
        ):
            """Public whitelist lookup."""
            key = self.store.authorization_key(asset_id, template_id, terms_id, minter_id)
            whitelisted = await self.store.is_whitelisted(asset_id, template_id, terms_id, minter_id)
            return WhitelistStatusResponse(whitelisted=whitelisted, authorization_key=key)

        @self.app.post("/hook/before-mint", response_model=MintingFeeResponse)
        async def before_mint_license_tokens(request: BeforeMintRequest):
            """Authorize a mint and return the fee owed."""
            fee = await self.hook.before_mint_license_tokens(
                request.caller, request.asset_id, request.template_id, request.terms_id,
                request.amount, request.receiver, request.hook_data
            )
            return MintingFeeResponse.from_fee(fee)

        @self.app.post("/hook/before-register-derivative", response_model=MintingFeeResponse)
        async def before_register_derivative(request: BeforeRegisterDerivativeRequest):
            """Authorize a derivative registration and return the fee owed."""
            fee = await self.hook.before_register_derivative(
                request.caller, request.child_id, request.parent_asset_id,
                request.template_id, request.terms_id, request.hook_data
            )
            return MintingFeeResponse.from_fee(fee)

        @self.app.post("/hook/calculate-minting-fee", response_model=MintingFeeResponse)
        async def calculate_minting_fee(request: BeforeMintRequest):
            """Predict the fee a mint would charge, without authorizing it."""
            fee = await self.hook.calculate_minting_fee(
                request.caller, request.asset_id, request.template_id, request.terms_id,
                request.amount, request.receiver, request.hook_data
            )
            return MintingFeeResponse.from_fee(fee)

        @self.app.get("/whitelist/stats")
        async def get_stats():
            """Get whitelist statistics."""
            circuits = {}
            for collaborator in (self.access_controller, self.terms_provider):
                breaker = getattr(collaborator, "circuit_breaker", None)
                if breaker is not None:
                    circuits[breaker.name] = breaker.get_state()

            return {
                "whitelisted_entries": await self.store.entry_count(),
                "backend": type(self.backend).__name__,
                "pending_notifications": self.publisher.pending,
                "circuits": circuits,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check licensing hook dependencies."""
        try:
            healthy = await self.backend.health_check()
        except Exception:
            healthy = False
        return {"whitelist_backend": "ok" if healthy else "error"}

    async def start(self):
        """Start licensing hook components."""
        await self.backend.start()

        if self.audit_sink:
            try:
                await self.audit_sink.start()
                self.publisher.subscribe(self.audit_sink)
            except LicensingAccessException as e:
                self.logger.warning("Whitelist audit sink disabled", error=e.message)

        self.logger.info("Licensing hook service started", backend=type(self.backend).__name__)

    async def stop(self):
        """Stop licensing hook components."""
        await self.publisher.drain()
        if self.audit_sink:
            await self.audit_sink.stop()
        await self.backend.stop()

        self.logger.info("Licensing hook service stopped")


def create_app(**kwargs):
    """Create licensing hook service application."""
    service = LicensingHookService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = LicensingHookService()
    service.run()
