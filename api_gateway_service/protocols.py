"""
Protocols for API Gateway Service.

Defines the interfaces used for dependency injection. Routes depend on these
protocols, not on the concrete implementations.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from prometheus_client import Counter, Histogram

from api_gateway_service.models import OutboundRequest, UpstreamResponse


class ProxyForwarderProtocol(Protocol):
    """Sends one outbound request and returns the buffered backend response."""

    async def forward(self, outbound: OutboundRequest, correlation_id: UUID) -> UpstreamResponse:
        ...


class DocsAggregatorProtocol(Protocol):
    """Builds the merged OpenAPI document from every backend."""

    async def aggregate(self) -> dict[str, Any]:
        ...


class MetricsProtocol(Protocol):
    """Protocol for metrics collection matching GatewayMetrics."""

    @property
    def http_requests_total(self) -> Counter:
        ...

    @property
    def downstream_service_calls_total(self) -> Counter:
        ...

    @property
    def downstream_service_call_duration_seconds(self) -> Histogram:
        ...

    @property
    def api_errors_total(self) -> Counter:
        ...

    @property
    def docs_branch_failures_total(self) -> Counter:
        ...
