"""
Shared error handling for the Country Stats Gateway.

Every error leaving the service is rendered as ``{"error": ..., "status": ...}``
with a matching HTTP status code.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    status: int
    code: Optional[str] = None
    upstream_status: Optional[int] = None


class CountryServiceException(Exception):
    """Base exception for Country Stats Gateway services.

    ``headers`` are copied onto the error response by the service's exception
    handler.
    """

    status_code: int = 500

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.headers: Dict[str, str] = dict(headers or {})
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            error=self.message,
            status=self.status_code,
            code=self.code,
            upstream_status=self.details.get("upstream_status")
        )


class ValidationError(CountryServiceException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class RateLimitError(CountryServiceException):
    """Rate limiting errors."""

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        details: Optional[Dict[str, Any]] = None,
        retry_after: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        super().__init__("RATE_LIMIT_ERROR", message, details, headers=headers)
        self.retry_after = retry_after
        if retry_after is not None:
            self.headers["Retry-After"] = str(retry_after)


class UpstreamTimeoutError(CountryServiceException):
    """Upstream did not answer within the deadline."""

    status_code = 504

    def __init__(self, message: str = "Request timeout", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_TIMEOUT", message, details)


class ExternalServiceError(CountryServiceException):
    """External service errors."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details, status_code)


class ServiceError(CountryServiceException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Internal Server Error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)
