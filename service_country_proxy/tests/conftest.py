"""
Shared fixtures for country proxy tests.
"""

import pytest


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000.0


@pytest.fixture
def clock():
    """Fake clock starting at an arbitrary point."""
    return FakeClock()


@pytest.fixture
def brazil_record():
    """Trimmed upstream record for Brazil."""
    return {
        "name": {"common": "Brazil", "official": "Federative Republic of Brazil"},
        "capital": ["Brasília"],
        "region": "Americas",
        "population": 212559409,
        "area": 8515767.0,
        "languages": {"por": "Portuguese"},
    }
