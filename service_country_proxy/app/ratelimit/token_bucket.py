"""
Token bucket rate limiter for the country lookup gate.

Refill is computed lazily from elapsed clock time on every check; there is no
background timer. Whole refill intervals add whole tokens, and each refill
moves the reference timestamp to "now", so leftover time shorter than one
interval is dropped.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from shared.logging import get_logger


Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a per-client limiter check."""

    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: int
    retry_after: Optional[int] = None


class TokenBucket:
    """Lazily refilled token bucket."""

    def __init__(self, capacity: int = 5, refill_interval_ms: int = 1000, clock: Optional[Clock] = None):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_interval_ms <= 0:
            raise ValueError("refill_interval_ms must be positive")

        self._capacity = capacity
        self._refill_interval_ms = refill_interval_ms
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._tokens = capacity
        self._last_refill = self._clock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def refill_interval_ms(self) -> int:
        return self._refill_interval_ms

    @property
    def available_tokens(self) -> int:
        """Current token count, after applying any pending refill."""
        with self._lock:
            self._refill()
            return self._tokens

    def try_acquire(self) -> bool:
        """Take one token if available. Never blocks."""
        with self._lock:
            self._refill()
            if self._tokens <= 0:
                return False
            self._tokens -= 1
            return True

    def seconds_until_token(self) -> float:
        """Time until the next refill would add a token (0 when one is available)."""
        with self._lock:
            self._refill()
            if self._tokens > 0:
                return 0.0
            elapsed_ms = (self._clock() - self._last_refill) * 1000.0
            return max(0.0, (self._refill_interval_ms - elapsed_ms) / 1000.0)

    def _refill(self) -> None:
        # Caller holds the lock
        now = self._clock()
        elapsed_ms = (now - self._last_refill) * 1000.0
        refill_amount = int(elapsed_ms // self._refill_interval_ms)
        if refill_amount > 0:
            self._tokens = min(self._capacity, self._tokens + refill_amount)
            self._last_refill = now


class KeyedTokenBucketLimiter:
    """One token bucket per client key."""

    strategy = "token_bucket"

    def __init__(self, capacity: int = 5, refill_interval_ms: int = 1000, clock: Optional[Clock] = None):
        self.capacity = capacity
        self.refill_interval_ms = refill_interval_ms
        self._clock = clock or time.monotonic
        self._buckets: Dict[str, TokenBucket] = {}
        self._last_seen: Dict[str, float] = {}
        # After this much idle time a bucket has refilled to capacity
        self._idle_seconds = capacity * refill_interval_ms / 1000.0
        self._lock = threading.Lock()
        self.logger = get_logger("country.token_bucket")

    def _bucket_for(self, key: str) -> TokenBucket:
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._last_seen[key] = now
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self.capacity, self.refill_interval_ms, clock=self._clock)
                self._buckets[key] = bucket
            return bucket

    def check(self, key: str) -> RateLimitDecision:
        """Consume one token from ``key``'s bucket."""
        bucket = self._bucket_for(key)
        allowed = bucket.try_acquire()
        reset = max(1, math.ceil(self.refill_interval_ms / 1000))

        if not allowed:
            retry_after = max(1, math.ceil(bucket.seconds_until_token()))
            self.logger.warning("Rate limit exceeded", client_id=key, limit=self.capacity)
            return RateLimitDecision(
                allowed=False,
                limit=self.capacity,
                remaining=0,
                reset_in_seconds=retry_after,
                retry_after=retry_after
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.capacity,
            remaining=bucket.available_tokens,
            reset_in_seconds=reset
        )

    def reset(self, key: str) -> bool:
        """Forget ``key``'s bucket; it starts full on the next request."""
        with self._lock:
            removed = self._buckets.pop(key, None) is not None
            self._last_seen.pop(key, None)
        if removed:
            self.logger.info("Rate limit reset", client_id=key)
        return removed

    def stats(self) -> Dict[str, int]:
        with self._lock:
            self._prune(self._clock())
            return {"total_clients": len(self._buckets)}

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        idle = [k for k, seen in self._last_seen.items() if now - seen >= self._idle_seconds]
        for key in idle:
            del self._last_seen[key]
            del self._buckets[key]
