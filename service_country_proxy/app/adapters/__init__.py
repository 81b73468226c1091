"""
Adapters package for the country proxy.

Contains the HTTP client wrapper for the upstream country data API. The
adapter owns request shape, deadline and response validation, and reports
every outcome as a lookup result instead of raising.
"""

from .country_client import CountryLookupGate, DEFAULT_BASE_URL

__all__ = [
    "CountryLookupGate",
    "DEFAULT_BASE_URL",
]
