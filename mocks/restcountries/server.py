"""
Mock country data server mimicking the REST Countries ``/v3.1/name`` endpoint.

Point the proxy at it with
``COUNTRY_UPSTREAM_BASE_URL=http://localhost:8090/v3.1/name``.
Set ``MOCK_COUNTRIES_DELAY_MS`` to exercise the proxy's deadline.
"""

import asyncio
import os
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from shared.logging import get_logger


class MockCountriesServer:
    """Mock REST Countries server implementation."""

    def __init__(self, port: int = 8090, delay_ms: Optional[int] = None):
        self.port = port
        self.delay_ms = delay_ms if delay_ms is not None else int(os.getenv("MOCK_COUNTRIES_DELAY_MS", "0"))
        self.logger = get_logger("mock.restcountries")
        self.app = FastAPI(title="Mock REST Countries", version="1.0.0")

        self.countries: List[Dict[str, Any]] = [
            {
                "name": {"common": "Brazil", "official": "Federative Republic of Brazil"},
                "cca2": "BR",
                "capital": ["Brasília"],
                "region": "Americas",
                "subregion": "South America",
                "population": 212559409,
                "area": 8515767.0,
                "languages": {"por": "Portuguese"},
                "currencies": {"BRL": {"name": "Brazilian real", "symbol": "R$"}},
            },
            {
                "name": {"common": "Japan", "official": "Japan"},
                "cca2": "JP",
                "capital": ["Tokyo"],
                "region": "Asia",
                "subregion": "Eastern Asia",
                "population": 125836021,
                "area": 377930.0,
                "languages": {"jpn": "Japanese"},
                "currencies": {"JPY": {"name": "Japanese yen", "symbol": "¥"}},
            },
            {
                "name": {"common": "Guinea-Bissau", "official": "Republic of Guinea-Bissau"},
                "cca2": "GW",
                "capital": ["Bissau"],
                "region": "Africa",
                "subregion": "Western Africa",
                "population": 1967998,
                "area": 36125.0,
                "languages": {"por": "Portuguese", "pov": "Upper Guinea Creole"},
                "currencies": {"XOF": {"name": "West African CFA franc", "symbol": "Fr"}},
            },
            {
                # Markup in a field, to check the proxy strips it
                "name": {"common": "Testland", "official": "<b>Republic</b> of <script>alert(1)</script>Testland"},
                "cca2": "TL",
                "capital": ["<i>Test City</i>"],
                "region": "Nowhere",
                "population": 1,
                "area": 1.0,
            },
        ]

        self._setup_routes()

    def _setup_routes(self):
        """Set up mock routes."""

        @self.app.get("/")
        async def root():
            return {"service": "mock-restcountries", "countries": len(self.countries)}

        @self.app.get("/v3.1/name/{name}")
        async def by_name(name: str, fullText: bool = Query(default=False)):
            if self.delay_ms:
                await asyncio.sleep(self.delay_ms / 1000.0)

            matches = [c for c in self.countries if self._matches(c, name, fullText)]
            self.logger.info("Country lookup", name=name, full_text=fullText, matches=len(matches))

            if not matches:
                return JSONResponse(status_code=404, content={"status": 404, "message": "Not Found"})
            return matches

    @staticmethod
    def _matches(country: Dict[str, Any], name: str, full_text: bool) -> bool:
        wanted = name.strip().lower()
        names = [country["name"]["common"].lower(), country["name"]["official"].lower()]
        if full_text:
            return wanted in names
        return any(wanted in n for n in names)


def create_app():
    """Create mock REST Countries application."""
    server = MockCountriesServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8090)
