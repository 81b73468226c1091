"""
Rate-limited, deadline-bounded client for the country data API.
"""

import asyncio
import math
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..domain.lookup import (
    DEFAULT_DEADLINE_MS,
    FailureKind,
    LookupFailure,
    LookupResult,
    LookupSuccess,
    validate_query,
)
from ..ratelimit.token_bucket import TokenBucket


DEFAULT_BASE_URL = "https://restcountries.com/v3.1/name"


class CountryLookupGate:
    """Performs exactly one upstream lookup per call.

    ``lookup`` never raises for input, rate limit, timeout or upstream
    problems; every outcome comes back as a ``LookupSuccess`` or a
    ``LookupFailure``. Nothing is cached or retried, so a caller retry goes
    through validation and the limiter again.

    Args:
        base_url: Upstream endpoint; the quoted name is appended as a path segment.
        limiter: Bucket consulted before each network call. ``None`` skips the check.
        deadline_ms: Budget for the whole exchange, body included.
        client: Shared ``httpx.AsyncClient``. When omitted a client is opened per call.
        transport: Transport for per-call clients (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        limiter: Optional[TokenBucket] = None,
        deadline_ms: int = DEFAULT_DEADLINE_MS,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.limiter = limiter
        self.deadline_ms = deadline_ms
        self._client = client
        self._transport = transport
        self.metrics = metrics
        self.logger = get_logger("country.gate")

    async def lookup(self, query: Any) -> LookupResult:
        """Look up one country by full name."""
        request = validate_query(query, self.deadline_ms)
        if isinstance(request, LookupFailure):
            self.logger.info("Rejected country query", reason=request.message)
            return self._finish(request)

        if self.limiter is not None and not self.limiter.try_acquire():
            self.logger.warning("Lookup rate limit exceeded", query=request.sanitized_query)
            return self._finish(LookupFailure(
                FailureKind.RATE_LIMIT_EXCEEDED,
                "Rate limit exceeded. Please try again later.",
                retry_after=max(1, math.ceil(self.limiter.seconds_until_token()))
            ))

        url = f"{self.base_url}/{quote(request.sanitized_query, safe='')}"
        start_time = time.monotonic()

        try:
            response = await asyncio.wait_for(self._get(url), timeout=request.deadline_ms / 1000.0)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            self.logger.warning("Country lookup timed out", url=url, deadline_ms=request.deadline_ms)
            return self._finish(LookupFailure(FailureKind.TIMEOUT, "Request timeout"), start_time)
        except Exception as exc:
            self.logger.error("Error fetching country stats", url=url, error=str(exc))
            return self._finish(LookupFailure(FailureKind.NETWORK_ERROR, str(exc)), start_time)

        if not response.is_success:
            self.logger.error(
                "Country lookup failed",
                url=url,
                status_code=response.status_code,
                reason=response.reason_phrase
            )
            return self._finish(LookupFailure(
                FailureKind.UPSTREAM_ERROR,
                f"Failed to fetch data for {request.sanitized_query}: {response.reason_phrase}",
                status_code=response.status_code
            ), start_time)

        try:
            data = response.json()
        except ValueError as exc:
            self.logger.error("Country lookup returned invalid JSON", url=url, error=str(exc))
            return self._finish(LookupFailure(FailureKind.NETWORK_ERROR, "Invalid JSON body"), start_time)

        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            self.logger.error("Invalid response format", url=url, body_type=type(data).__name__)
            return self._finish(LookupFailure(FailureKind.MALFORMED_RESPONSE, "Invalid response format"), start_time)

        self.logger.debug("Country record retrieved", url=url)
        return self._finish(LookupSuccess(payload=data[0]), start_time)

    async def lookup_or_none(self, query: Any) -> Optional[Dict[str, Any]]:
        """Return the country record, or ``None`` when there is no data."""
        result = await self.lookup(query)
        return result.payload

    async def _get(self, url: str) -> httpx.Response:
        headers = {"Accept": "application/json"}
        params = {"fullText": "true"}

        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers)

        # The caller's deadline governs cancellation, so httpx gets no timeout of its own
        async with httpx.AsyncClient(transport=self._transport, timeout=None) as client:
            return await client.get(url, params=params, headers=headers)

    def _finish(self, result: LookupResult, start_time: Optional[float] = None) -> LookupResult:
        if self.metrics:
            duration = time.monotonic() - start_time if start_time is not None else None
            outcome = "success" if result.ok else result.kind.value
            self.metrics.record_lookup(outcome, duration)
        return result
