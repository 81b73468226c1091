"""
Fixed window request counter keyed by client.

A client's window opens with its first request and lasts ``window_seconds``.
Requests past ``max_requests`` inside the window are rejected; the counter
starts over once the window has elapsed.
"""

import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from shared.logging import get_logger

from .token_bucket import Clock, RateLimitDecision


@dataclass
class _Window:
    started_at: float
    count: int = 0


class FixedWindowLimiter:
    """In-memory fixed window limiter (default 100 requests / 15 minutes)."""

    strategy = "fixed_window"

    def __init__(self, max_requests: int = 100, window_seconds: float = 15 * 60, clock: Optional[Clock] = None):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock or time.monotonic
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("country.fixed_window")

    def check(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        with self._lock:
            now = self._clock()
            self._prune(now)

            window = self._windows.get(key)
            if window is None:
                window = _Window(started_at=now)
                self._windows[key] = window

            reset_in = max(1, math.ceil(window.started_at + self.window_seconds - now))

            if window.count >= self.max_requests:
                current_count = window.count
                allowed = False
            else:
                window.count += 1
                current_count = window.count
                allowed = True

        if not allowed:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=key,
                current_count=current_count,
                limit=self.max_requests
            )
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_in_seconds=reset_in,
                retry_after=reset_in
            )

        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - current_count),
            reset_in_seconds=reset_in
        )

    def reset(self, key: str) -> bool:
        """Reset rate limit for a client."""
        with self._lock:
            removed = self._windows.pop(key, None) is not None
        if removed:
            self.logger.info("Rate limit reset", client_id=key)
        return removed

    def stats(self) -> Dict[str, Any]:
        """Get global rate limiting statistics."""
        with self._lock:
            self._prune(self._clock())
            total_clients = len(self._windows)
            total_requests = sum(w.count for w in self._windows.values())

        return {
            "total_clients": total_clients,
            "total_requests": total_requests,
            "average_requests_per_client": total_requests / max(1, total_clients)
        }

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]
