"""
Base service class for Country Stats Gateway services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from typing import AbstractSet, Dict, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, set_client_context, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import CountryServiceException, ErrorResponse


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


def get_client_ip(request: Request, trusted_proxies: AbstractSet[str] = frozenset()) -> str:
    """Extract the caller IP.

    Forwarded headers are only believed when the socket peer is one of
    ``trusted_proxies``; otherwise the peer address itself is the client.
    """
    peer = request.client.host if request.client else None
    if peer not in trusted_proxies:
        return peer or "unknown"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return peer or "unknown"


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name, port)
        self.port = self.config.port
        self.trusted_proxies = self.config.trusted_proxy_hosts()
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Country Stats Gateway - {self.service_name.title()} Service",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins(),
            allow_credentials=False,
            allow_methods=["GET"],
            allow_headers=["Accept", "Content-Type"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            start_time = time.time()
            request_id = set_request_id(request.headers.get("X-Request-Id"))
            set_client_context(get_client_ip(request, self.trusted_proxies))

            try:
                response = await call_next(request)
                duration = time.time() - start_time

                for header, value in SECURITY_HEADERS.items():
                    response.headers.setdefault(header, value)
                response.headers["X-Request-Id"] = request_id

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=self._route_template(request),
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                dependencies = await self._check_dependencies()
                self.metrics.record_health_check("ok")

                return {
                    "service": self.service_name,
                    "status": "ok",
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(CountryServiceException)
        async def country_exception_handler(request: Request, exc: CountryServiceException):
            """Render service exceptions as ``{"error", "status"}``."""
            log = self.logger.warning if exc.status_code < 500 else self.logger.error
            log(
                "Country service error",
                code=exc.code,
                message=exc.message,
                details=exc.details,
                status_code=exc.status_code
            )
            self.metrics.record_error(exc.code)

            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump(exclude_none=True),
                headers=exc.headers
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions.

            These are rendered outside the request middleware, so the security
            headers are attached here.
            """
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(error="Internal Server Error", status=500).model_dump(exclude_none=True),
                headers=SECURITY_HEADERS
            )

    def _route_template(self, request: Request) -> str:
        """Label metrics by route template so country names don't explode cardinality."""
        route = request.scope.get("route")
        return getattr(route, "path", request.url.path)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.port,
            log_level=self.config.log_level.lower()
        )
