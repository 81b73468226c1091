"""
Shared metrics configuration for the Country Stats Gateway.
"""

from prometheus_client import CollectorRegistry, Counter, Histogram, Info
from typing import Dict, Any, Optional


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so several service instances can live in
    one process (tests build one app per test).
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Lookup gate
        self._metrics["country_lookups_total"] = Counter(
            "country_lookups_total",
            "Country lookups by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["country_lookup_duration_seconds"] = Histogram(
            "country_lookup_duration_seconds",
            "Upstream country lookup duration in seconds",
            registry=self.registry
        )

        self._metrics["rate_limit_hits_total"] = Counter(
            "rate_limit_hits_total",
            "Total rate limit hits",
            ["endpoint", "strategy"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_lookup(self, outcome: str, duration: Optional[float] = None):
        """Record one gate lookup and, when it reached upstream, its duration."""
        self._metrics["country_lookups_total"].labels(outcome=outcome).inc()
        if duration is not None:
            self._metrics["country_lookup_duration_seconds"].observe(duration)

    def record_rate_limit_hit(self, endpoint: str, strategy: str):
        """Record a request rejected by a rate limiter."""
        self._metrics["rate_limit_hits_total"].labels(endpoint=endpoint, strategy=strategy).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
