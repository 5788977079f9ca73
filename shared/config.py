"""
Shared configuration management for the Licensing Access Layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="LICENSING_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Whitelist storage
    whitelist_backend: str = Field(default="memory", description="memory or redis")
    redis_url: str = Field(default="redis://localhost:6379/0")
    whitelist_key_prefix: str = Field(default="whitelist:")

    # Collaborators
    access_controller_url: str = Field(default="http://localhost:8030")
    license_terms_url: str = Field(default="http://localhost:8031")
    hook_address: str = Field(
        default="0x0000000000000000000000000000000000000000",
        description="Address under which this hook is registered with the access controller"
    )
    collaborator_timeout_seconds: float = Field(default=5.0, gt=0)
    circuit_failure_threshold: int = Field(default=3, ge=1)
    circuit_recovery_timeout: float = Field(default=30.0, gt=0)

    # Audit notifications
    kafka_enabled: bool = Field(default=False)
    kafka_bootstrap: str = Field(default="localhost:9092")
    whitelist_events_topic: str = Field(default="licensing.whitelist.events")

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: Optional[str] = Field(default="http://localhost:4317")
    enable_console_tracing: bool = Field(default=False)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
