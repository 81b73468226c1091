"""
Unit tests for the country lookup gate.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from service_country_proxy.app.adapters.country_client import CountryLookupGate
from service_country_proxy.app.domain.lookup import FailureKind, LookupFailure, LookupSuccess
from service_country_proxy.app.ratelimit.token_bucket import TokenBucket
from shared.metrics import MetricsCollector


BASE_URL = "https://countries.test/v3.1/name"


class RecordingHandler:
    """MockTransport handler that records requests and answers each with a fresh response."""

    def __init__(self, status_code: int = 200, delay: float = 0.0, **response_kwargs):
        self.status_code = status_code
        self.response_kwargs = response_kwargs
        self.delay = delay
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return httpx.Response(self.status_code, **self.response_kwargs)


class TestCountryLookupGate:
    """Test cases for CountryLookupGate."""

    @pytest.fixture
    def bucket(self, clock):
        """Bucket matching the browser defaults."""
        return TokenBucket(capacity=5, refill_interval_ms=1000, clock=clock)

    def make_gate(self, handler, bucket=None, deadline_ms=5000, metrics=None):
        return CountryLookupGate(
            base_url=BASE_URL,
            limiter=bucket,
            deadline_ms=deadline_ms,
            transport=httpx.MockTransport(handler),
            metrics=metrics,
        )

    @pytest.mark.asyncio
    async def test_lookup_success(self, bucket, brazil_record):
        """A 2xx list response yields its first record."""
        handler = RecordingHandler(200, json=[brazil_record, {"name": "other"}])
        gate = self.make_gate(handler, bucket)

        result = await gate.lookup("Brazil")

        assert isinstance(result, LookupSuccess)
        assert result.ok is True
        assert result.payload == brazil_record
        assert bucket.available_tokens == 4

    @pytest.mark.asyncio
    async def test_request_shape(self, bucket, brazil_record):
        """The name is quoted into the path with fullText and a JSON Accept header."""
        handler = RecordingHandler(200, json=[brazil_record])
        gate = self.make_gate(handler, bucket)

        await gate.lookup("Costa Rica")

        request = handler.requests[0]
        assert request.method == "GET"
        assert request.url.raw_path == b"/v3.1/name/Costa%20Rica?fullText=true"
        assert request.headers["Accept"] == "application/json"
        assert "Authorization" not in request.headers
        assert "Referer" not in request.headers

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["Brazil; DROP", "<script>", "Côte d'Ivoire", "", None, 42])
    async def test_invalid_input_skips_network_and_tokens(self, bucket, query):
        """Rejected queries never reach the limiter or the network."""
        handler = RecordingHandler(200, json=[{}])
        gate = self.make_gate(handler, bucket)

        result = await gate.lookup(query)

        assert isinstance(result, LookupFailure)
        assert result.kind is FailureKind.INVALID_INPUT
        assert result.payload is None
        assert handler.requests == []
        assert bucket.available_tokens == 5

    @pytest.mark.asyncio
    async def test_rate_limit_exceeded(self, bucket, brazil_record):
        """The sixth immediate lookup is refused before any network call."""
        handler = RecordingHandler(200, json=[brazil_record])
        gate = self.make_gate(handler, bucket)

        for _ in range(5):
            assert (await gate.lookup("Brazil")).ok

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.RATE_LIMIT_EXCEEDED
        assert len(handler.requests) == 5

    @pytest.mark.asyncio
    async def test_rate_limit_reports_time_to_next_token(self, clock, brazil_record):
        handler = RecordingHandler(200, json=[brazil_record])
        gate = self.make_gate(handler, TokenBucket(capacity=1, refill_interval_ms=3000, clock=clock))

        assert (await gate.lookup("Brazil")).ok
        clock.advance_ms(500)
        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.RATE_LIMIT_EXCEEDED
        assert result.retry_after == 3

    @pytest.mark.asyncio
    async def test_timeout_consumes_token(self, bucket, brazil_record):
        """A slow upstream yields TIMEOUT and the token stays spent."""
        handler = RecordingHandler(200, json=[brazil_record], delay=1.0)
        gate = self.make_gate(handler, bucket, deadline_ms=50)

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.TIMEOUT
        assert result.message == "Request timeout"
        assert bucket.available_tokens == 4

    @pytest.mark.asyncio
    async def test_transport_timeout_maps_to_timeout(self):
        """httpx's own timeout exceptions are reported as TIMEOUT too."""
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        gate = self.make_gate(handler)

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_upstream_error(self):
        """Non-2xx responses carry the upstream status code."""
        handler = RecordingHandler(404, json={"status": 404, "message": "Not Found"})
        gate = self.make_gate(handler)

        result = await gate.lookup("Atlantis")

        assert result.kind is FailureKind.UPSTREAM_ERROR
        assert result.status_code == 404
        assert "Atlantis" in result.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[], {"name": "Brazil"}, ["Brazil"], [None], "Brazil"])
    async def test_malformed_response(self, body):
        """Bodies that are not a non-empty list of records are malformed."""
        handler = RecordingHandler(200, json=body)
        gate = self.make_gate(handler)

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.MALFORMED_RESPONSE
        assert result.payload is None

    @pytest.mark.asyncio
    async def test_invalid_json_is_network_error(self):
        """Unparseable bodies are reported as NETWORK_ERROR, not malformed."""
        handler = RecordingHandler(200, content=b"<html>oops</html>")
        gate = self.make_gate(handler)

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.NETWORK_ERROR
        assert result.payload is None

    @pytest.mark.asyncio
    async def test_connection_error_is_network_error(self):
        """Transport failures come back as a result instead of raising."""
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        gate = self.make_gate(handler)

        result = await gate.lookup("Brazil")

        assert result.kind is FailureKind.NETWORK_ERROR
        assert "Connection refused" in result.message

    @pytest.mark.asyncio
    async def test_consecutive_lookups_are_independent(self, bucket, brazil_record):
        """Two identical lookups hit upstream twice and spend two tokens."""
        handler = RecordingHandler(200, json=[brazil_record])
        gate = self.make_gate(handler, bucket)

        first = await gate.lookup("Brazil")
        second = await gate.lookup("Brazil")

        assert first.payload == second.payload == brazil_record
        assert len(handler.requests) == 2
        assert bucket.available_tokens == 3

    @pytest.mark.asyncio
    async def test_no_limiter_means_no_local_budget(self, brazil_record):
        """A gate without a limiter only validates and fetches."""
        handler = RecordingHandler(200, json=[brazil_record])
        gate = self.make_gate(handler)

        results = [await gate.lookup("Brazil") for _ in range(10)]

        assert all(r.ok for r in results)

    @pytest.mark.asyncio
    async def test_lookup_or_none(self, brazil_record):
        """The convenience wrapper returns the record or None."""
        gate = self.make_gate(RecordingHandler(200, json=[brazil_record]))
        assert await gate.lookup_or_none("Brazil") == brazil_record

        gate = self.make_gate(RecordingHandler(500))
        assert await gate.lookup_or_none("Brazil") is None

    @pytest.mark.asyncio
    async def test_shared_client(self, brazil_record):
        """An injected AsyncClient is used instead of a per-call client."""
        client = AsyncMock()
        client.get.return_value = httpx.Response(
            200,
            json=[brazil_record],
            request=httpx.Request("GET", f"{BASE_URL}/Brazil")
        )
        gate = CountryLookupGate(base_url=BASE_URL, client=client)

        with patch("httpx.AsyncClient") as per_call_client:
            result = await gate.lookup("Brazil")

        assert result.ok
        per_call_client.assert_not_called()
        client.get.assert_awaited_once_with(
            f"{BASE_URL}/Brazil",
            params={"fullText": "true"},
            headers={"Accept": "application/json"}
        )

    @pytest.mark.asyncio
    async def test_outcomes_are_recorded(self, brazil_record):
        """Each lookup increments the outcome counter."""
        metrics = MetricsCollector("country")
        gate = self.make_gate(RecordingHandler(200, json=[brazil_record]), metrics=metrics)

        await gate.lookup("Brazil")
        await gate.lookup("Brazil!")

        registry = metrics.registry
        assert registry.get_sample_value("country_lookups_total", {"outcome": "success"}) == 1.0
        assert registry.get_sample_value("country_lookups_total", {"outcome": "invalid_input"}) == 1.0
