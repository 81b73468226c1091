"""
Domain helpers for the country proxy: lookup results and payload sanitization.
"""

from .lookup import (
    FailureKind,
    LookupFailure,
    LookupRequest,
    LookupResult,
    LookupSuccess,
    error_for_failure,
    validate_query,
)
from .sanitize import sanitize_string, strip_markup

__all__ = [
    "FailureKind",
    "LookupFailure",
    "LookupRequest",
    "LookupResult",
    "LookupSuccess",
    "error_for_failure",
    "validate_query",
    "sanitize_string",
    "strip_markup",
]
