"""
Shared utilities for the Licensing Access Layer.

This package aggregates common building blocks consumed by all services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation
- metrics: Prometheus metrics helpers
- tracing: OpenTelemetry tracing config
- errors: Canonical error types and responses
- circuit_breaker: Fail-fast protection for external calls
- base_service: FastAPI service skeleton (health, metrics, error handlers)
- test_helpers: Address factories and in-memory collaborator fakes

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
