"""
Country data proxy service.
"""

from typing import Dict, Optional

import httpx
from fastapi import Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .adapters.country_client import CountryLookupGate
from .domain.lookup import LookupFailure, error_for_failure
from .domain.sanitize import strip_markup
from .ratelimit.middleware import RateLimitMiddleware, build_client_limiter
from .ratelimit.token_bucket import Clock, TokenBucket


class CountryProxyService(BaseService):
    """Relays country lookups to the upstream API behind per-client limits."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__("country", 3001, config=config)

        self.client_limiter = build_client_limiter(self.config, clock=clock)
        self.rate_limit_middleware = RateLimitMiddleware(
            self.client_limiter,
            metrics=self.metrics,
            trusted_proxies=self.trusted_proxies
        )

        upstream_bucket = None
        if self.config.upstream_bucket_capacity > 0:
            upstream_bucket = TokenBucket(
                capacity=self.config.upstream_bucket_capacity,
                refill_interval_ms=self.config.upstream_bucket_refill_interval_ms,
                clock=clock
            )

        self.gate = CountryLookupGate(
            base_url=self.config.upstream_base_url,
            limiter=upstream_bucket,
            deadline_ms=self.config.upstream_timeout_ms,
            transport=transport,
            metrics=self.metrics,
        )

        self._setup_country_routes()

        self.app.state.country_service = self

    def _setup_country_routes(self):
        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Country Stats Gateway - Country Proxy",
                "rate_limit_strategy": self.client_limiter.strategy,
            }

        @self.app.get("/api/country/{name}")
        async def get_country(name: str, request: Request, response: Response):
            """Fetch one country's statistics, sanitized for HTML rendering."""
            decision = self.rate_limit_middleware.enforce(request)
            self.rate_limit_middleware.set_headers(response, decision)

            result = await self.gate.lookup(name)
            if isinstance(result, LookupFailure):
                error = error_for_failure(result)
                # The injected response is discarded when we raise
                error.headers.update(self.rate_limit_middleware.headers_for(decision))
                raise error

            # Upstream shape is a list of records; relay it with the one we matched
            return [strip_markup(result.payload)]

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"rate_limiter": self.client_limiter.strategy}


def create_app(config: Optional[ServiceConfig] = None):
    """Create the country proxy application."""
    service = CountryProxyService(config=config)
    return service.app


if __name__ == "__main__":
    service = CountryProxyService()
    service.run()
