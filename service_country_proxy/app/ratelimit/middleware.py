"""
Per-client rate limiting for the proxy endpoints.
"""

from typing import AbstractSet, Dict, Optional, Union

from fastapi import Request, Response

from shared.base_service import get_client_ip
from shared.config import BaseConfig
from shared.errors import RateLimitError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .fixed_window import FixedWindowLimiter
from .token_bucket import Clock, KeyedTokenBucketLimiter, RateLimitDecision


ClientLimiter = Union[FixedWindowLimiter, KeyedTokenBucketLimiter]


def build_client_limiter(config: BaseConfig, clock: Optional[Clock] = None) -> ClientLimiter:
    """Build the per-client limiter selected by ``rate_limit_strategy``."""
    if config.rate_limit_strategy == "token_bucket":
        return KeyedTokenBucketLimiter(
            capacity=config.bucket_capacity,
            refill_interval_ms=config.bucket_refill_interval_ms,
            clock=clock
        )
    return FixedWindowLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
        clock=clock
    )


class RateLimitMiddleware:
    """Checks callers against the per-client limiter."""

    def __init__(
        self,
        limiter: ClientLimiter,
        metrics: Optional[MetricsCollector] = None,
        trusted_proxies: AbstractSet[str] = frozenset()
    ):
        self.limiter = limiter
        self.metrics = metrics
        self.trusted_proxies = trusted_proxies
        self.logger = get_logger("country.rate_limit_middleware")

    def enforce(self, request: Request) -> RateLimitDecision:
        """Count the request; raise ``RateLimitError`` once the client is over budget."""
        client_id = get_client_ip(request, self.trusted_proxies)
        decision = self.limiter.check(client_id)

        if not decision.allowed:
            if self.metrics:
                endpoint = getattr(request.scope.get("route"), "path", request.url.path)
                self.metrics.record_rate_limit_hit(endpoint, self.limiter.strategy)
            raise RateLimitError(
                "Too many requests, please try again later.",
                details={
                    "limit": decision.limit,
                    "reset_in_seconds": decision.reset_in_seconds,
                },
                retry_after=decision.retry_after,
                headers=self.headers_for(decision)
            )
        return decision

    @staticmethod
    def headers_for(decision: RateLimitDecision) -> Dict[str, str]:
        """Rate limiting metadata as standard headers."""
        return {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
            "X-RateLimit-Reset": str(decision.reset_in_seconds),
        }

    @classmethod
    def set_headers(cls, response: Response, decision: RateLimitDecision) -> None:
        response.headers.update(cls.headers_for(decision))
