"""
Base service class for Licensing Access Layer services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Dict, Optional
import time
import os

from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import LicensingAccessException, ValidationError

SERVICE_VERSION = "1.0.0"


class BaseService:
    """FastAPI service shell: lifespan, request context, health, metrics and error rendering.

    Subclasses register their own routes and override ``start``, ``stop``
    and ``_check_dependencies``.
    """

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.port = port
        self.config = config or get_config(service_name, port)

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)
        self._started_at = time.time()

        if self.config.enable_tracing:
            from shared.tracing import configure_tracing
            configure_tracing(
                service_name, self.config.otel_exporter, self.config.enable_console_tracing, self.config.env
            )

        self.app = self._create_app()
        self._install_middleware()
        self._install_error_handlers()
        self._install_operational_routes()

    def _create_app(self) -> FastAPI:

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.start()
            try:
                yield
            finally:
                await self.stop()

        title = self.service_name.replace("_", " ").title()
        local = self.config.env == "local"
        return FastAPI(
            title=f"{title} Service",
            description=f"Licensing Access Layer - {title} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if local else None,
            redoc_url="/redoc" if local else None,
            lifespan=lifespan,
        )

    def _install_middleware(self):
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            started = time.perf_counter()
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            try:
                response = await call_next(request)
                duration = time.perf_counter() - started

                # Label by route template so path parameters cannot grow the series count.
                endpoint = getattr(request.scope.get("route"), "path", "unmatched")
                self.metrics.record_http_request(request.method, endpoint, response.status_code, duration)
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )
            finally:
                clear_context()

            response.headers["X-Request-ID"] = request_id
            return response

    def _error_response(self, exc: LicensingAccessException, request: Request) -> JSONResponse:
        self.logger.warning(
            "Request rejected",
            code=exc.code,
            message=exc.message,
            details=exc.details,
            path=request.url.path
        )
        self.metrics.record_error(exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

    def _install_error_handlers(self):

        @self.app.exception_handler(LicensingAccessException)
        async def licensing_exception_handler(request: Request, exc: LicensingAccessException):
            return self._error_response(exc, request)

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            errors = [
                {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
                for error in exc.errors()
            ]
            return self._error_response(ValidationError("invalid request", details={"errors": errors}), request)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}}
            )

    def _install_operational_routes(self):

        @self.app.get("/health")
        async def health_check():
            """Liveness plus dependency status; 503 when any dependency is down."""
            dependencies = await self._check_dependencies()
            status = "ok" if all(state == "ok" for state in dependencies.values()) else "degraded"
            self.metrics.record_health_check(status)

            return JSONResponse(
                status_code=200 if status == "ok" else 503,
                content={
                    "service": self.service_name,
                    "status": status,
                    "uptime_seconds": round(time.time() - self._started_at, 3),
                    "dependencies": dependencies,
                    "version": SERVICE_VERSION,
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=generate_latest(self.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    async def _check_dependencies(self) -> Dict[str, str]:
        return {}

    async def start(self):
        """Start service components. Override in subclasses."""

    async def stop(self):
        """Stop service components. Override in subclasses."""

    def run(self):
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
