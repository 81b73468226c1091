"""
Shared configuration management for the Country Stats Gateway.
"""

from typing import FrozenSet, List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="COUNTRY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # CORS, comma-separated list of origins
    allowed_origins: str = Field(default="")

    # Peers whose X-Forwarded-For / X-Real-IP headers are honored, comma-separated
    trusted_proxies: str = Field(default="")

    # Upstream country data API
    upstream_base_url: str = Field(default="https://restcountries.com/v3.1/name")
    upstream_timeout_ms: int = Field(default=5000, gt=0)

    # Per-client rate limiting
    rate_limit_strategy: Literal["fixed_window", "token_bucket"] = Field(default="fixed_window")
    rate_limit_max_requests: int = Field(default=100, gt=0)
    rate_limit_window_seconds: int = Field(default=15 * 60, gt=0)
    bucket_capacity: int = Field(default=5, gt=0)
    bucket_refill_interval_ms: int = Field(default=1000, gt=0)

    # Process-wide bucket in front of the upstream API (0 disables it)
    upstream_bucket_capacity: int = Field(default=0, ge=0)
    upstream_bucket_refill_interval_ms: int = Field(default=1000, gt=0)

    def trusted_proxy_hosts(self) -> FrozenSet[str]:
        return frozenset(h.strip() for h in self.trusted_proxies.split(",") if h.strip())


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "country"
    port: int = 3001
    host: str = "0.0.0.0"

    def cors_origins(self) -> List[str]:
        """Origins allowed to call the service from a browser."""
        origins = [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        if origins:
            return origins
        return ["*"] if self.env == "local" else []


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service.

    ``COUNTRY_PORT`` in the environment takes precedence over ``port``.
    """
    config = ServiceConfig(service_name=service_name)
    if "port" not in config.model_fields_set:
        config.port = port
    return config
