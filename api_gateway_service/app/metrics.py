"""Metrics definitions for the API Gateway Service."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class GatewayMetrics:
    """A container for all Prometheus metrics for the API Gateway Service."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics with optional registry for test isolation."""
        if registry is None:
            registry = REGISTRY
        self.http_requests_total = Counter(
            "gateway_http_requests_total",
            "Total number of proxied HTTP requests handled by the API Gateway.",
            ["method", "backend", "http_status"],
            registry=registry,
        )
        self.downstream_service_calls_total = Counter(
            "gateway_downstream_service_calls_total",
            "Total number of calls to downstream services.",
            ["service", "method", "status_code"],
            registry=registry,
        )
        self.downstream_service_call_duration_seconds = Histogram(
            "gateway_downstream_service_call_duration_seconds",
            "Duration of calls to downstream services in seconds.",
            ["service", "method"],
            registry=registry,
        )
        self.api_errors_total = Counter(
            "gateway_api_errors_total",
            "Total number of API errors.",
            ["backend", "error_type"],
            registry=registry,
        )
        self.docs_branch_failures_total = Counter(
            "gateway_docs_branch_failures_total",
            "Backend documentation fetches skipped during aggregation.",
            ["service"],
            registry=registry,
        )
