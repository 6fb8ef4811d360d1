from __future__ import annotations

from collections.abc import AsyncIterator
from uuid import UUID, uuid4

import httpx
from dishka import Provider, Scope, from_context, provide
from fastapi import Request
from prometheus_client import REGISTRY, CollectorRegistry

from api_gateway_service.app.metrics import GatewayMetrics
from api_gateway_service.app.pipeline import ProxyPipeline, build_proxy_pipeline
from api_gateway_service.config import Settings
from api_gateway_service.implementations.openapi_aggregator import OpenApiAggregator
from api_gateway_service.implementations.proxy_forwarder import ProxyForwarder
from api_gateway_service.protocols import (
    DocsAggregatorProtocol,
    MetricsProtocol,
    ProxyForwarderProtocol,
)
from api_gateway_service.routing import RouteTable, build_route_table


class ApiGatewayProvider(Provider):
    """APP-scoped infrastructure: config, HTTP client, routing, forwarding, docs."""

    scope = Scope.APP

    def __init__(self, settings: Settings, registry: CollectorRegistry | None = None) -> None:
        super().__init__()
        self._settings = settings
        self._registry = registry if registry is not None else REGISTRY

    @provide
    def get_config(self) -> Settings:
        return self._settings

    @provide
    def provide_registry(self) -> CollectorRegistry:
        return self._registry

    @provide
    def provide_metrics(self, registry: CollectorRegistry) -> MetricsProtocol:
        return GatewayMetrics(registry=registry)

    @provide
    async def get_http_client(self, config: Settings) -> AsyncIterator[httpx.AsyncClient]:
        # Per-request timeouts are applied by the forwarder and the aggregator
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(
                config.PROXY_TIMEOUT_SECONDS,
                connect=config.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
            ),
            follow_redirects=False,
        ) as client:
            yield client

    @provide
    def provide_route_table(self, config: Settings) -> RouteTable:
        return build_route_table(config)

    @provide
    def provide_pipeline(self, config: Settings, route_table: RouteTable) -> ProxyPipeline:
        return build_proxy_pipeline(config, route_table)

    @provide
    def provide_forwarder(
        self, client: httpx.AsyncClient, config: Settings, metrics: MetricsProtocol
    ) -> ProxyForwarderProtocol:
        return ProxyForwarder(
            client,
            metrics,
            timeout_seconds=config.PROXY_TIMEOUT_SECONDS,
            connect_timeout_seconds=config.HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS,
        )

    @provide
    def provide_docs_aggregator(
        self, client: httpx.AsyncClient, config: Settings, metrics: MetricsProtocol
    ) -> DocsAggregatorProtocol:
        return OpenApiAggregator(
            client,
            config.backend_descriptors(),
            public_url=config.GATEWAY_PUBLIC_URL,
            metrics=metrics,
            timeout_seconds=config.DOCS_FETCH_TIMEOUT_SECONDS,
        )


class RequestContextProvider(Provider):
    """REQUEST-scoped context: the FastAPI request and its correlation id."""

    request = from_context(provides=Request, scope=Scope.REQUEST)

    @provide(scope=Scope.REQUEST)
    def provide_correlation_id(self, request: Request) -> UUID:
        return getattr(request.state, "correlation_id", uuid4())
