"""
Lookup request and result types for the country fetch gate.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from shared.errors import (
    CountryServiceException,
    ExternalServiceError,
    RateLimitError,
    ServiceError,
    UpstreamTimeoutError,
    ValidationError,
)


QUERY_PATTERN = re.compile(r"^[A-Za-z0-9\s-]+$")
DEFAULT_DEADLINE_MS = 5000


class FailureKind(str, Enum):
    """Why a lookup produced no data."""

    INVALID_INPUT = "invalid_input"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    TIMEOUT = "timeout"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_RESPONSE = "malformed_response"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class LookupRequest:
    """A validated lookup."""

    raw_query: str
    sanitized_query: str
    deadline_ms: int = DEFAULT_DEADLINE_MS


@dataclass(frozen=True)
class LookupSuccess:
    payload: Dict[str, Any]

    ok = True


@dataclass(frozen=True)
class LookupFailure:
    kind: FailureKind
    message: str
    status_code: Optional[int] = None
    retry_after: Optional[int] = None

    ok = False

    @property
    def payload(self) -> None:
        return None


LookupResult = Union[LookupSuccess, LookupFailure]


def validate_query(query: Any, deadline_ms: int = DEFAULT_DEADLINE_MS) -> Union[LookupRequest, LookupFailure]:
    """Check ``query`` against the allowed character set.

    Only letters, digits, whitespace and hyphens are accepted.
    """
    if not isinstance(query, str) or not query:
        return LookupFailure(FailureKind.INVALID_INPUT, "Invalid country name")
    if not QUERY_PATTERN.match(query):
        return LookupFailure(FailureKind.INVALID_INPUT, "Invalid country name format")
    return LookupRequest(raw_query=query, sanitized_query=query, deadline_ms=deadline_ms)


def error_for_failure(failure: LookupFailure) -> CountryServiceException:
    """Map a lookup failure onto the service exception carrying its HTTP status."""
    details: Dict[str, Any] = {"kind": failure.kind.value}

    if failure.kind is FailureKind.INVALID_INPUT:
        return ValidationError(failure.message, details=details)
    if failure.kind is FailureKind.RATE_LIMIT_EXCEEDED:
        return RateLimitError(failure.message, details=details, retry_after=failure.retry_after or 1)
    if failure.kind is FailureKind.TIMEOUT:
        return UpstreamTimeoutError(failure.message, details=details)
    if failure.kind is FailureKind.UPSTREAM_ERROR:
        upstream_status = failure.status_code or 502
        details["upstream_status"] = upstream_status
        # 4xx (e.g. unknown country) is relayed; upstream 5xx becomes a bad gateway
        status = upstream_status if 400 <= upstream_status < 500 else 502
        return ExternalServiceError("country_api", failure.message, details=details, status_code=status)
    return ServiceError("Internal Server Error", details={**details, "reason": failure.message})
