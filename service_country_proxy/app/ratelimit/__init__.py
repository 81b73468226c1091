"""
Rate limiting package for the country proxy.

Holds the lazy token bucket guarding upstream lookups and the per-client
limiters (fixed window or keyed token buckets) applied at the HTTP boundary.
"""

from .token_bucket import TokenBucket, KeyedTokenBucketLimiter, RateLimitDecision
from .fixed_window import FixedWindowLimiter
from .middleware import RateLimitMiddleware, build_client_limiter

__all__ = [
    "TokenBucket",
    "KeyedTokenBucketLimiter",
    "RateLimitDecision",
    "FixedWindowLimiter",
    "RateLimitMiddleware",
    "build_client_limiter",
]
