"""
Ordered request pipeline for proxied requests.

Every stage takes the immutable ProxyContext and returns a new one. A stage
ends the request early by raising GatewayError; the remaining stages do not
run and the registered error handlers render the response.

    resolve_route -> authenticate -> rewrite_upstream_path
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from api_gateway_service.app.jwt_utils import validate_bearer_token
from api_gateway_service.config import Settings
from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.models import Identity, RawHeaders, RouteMatch
from api_gateway_service.routing import RouteTable, rewrite_path

logger = create_service_logger("api_gateway.pipeline")


class ProxyContext(BaseModel):
    """Per-request state threaded through the pipeline."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    raw_path: str | None = None
    query: str = ""
    headers: RawHeaders = ()
    body: bytes = b""
    correlation_id: UUID

    route: RouteMatch | None = None
    identity: Identity | None = None
    upstream_path: str | None = None

    def header(self, name: str) -> str | None:
        """First value of a header, decoded as latin-1, or None."""
        wanted = name.lower().encode("latin-1")
        for key, value in self.headers:
            if key.lower() == wanted:
                return value.decode("latin-1")
        return None


Stage = Callable[[ProxyContext], ProxyContext]


def resolve_route(route_table: RouteTable) -> Stage:
    def stage(context: ProxyContext) -> ProxyContext:
        route = route_table.resolve(context.method, context.path, context.correlation_id)
        logger.debug(
            f"Resolved {context.method} {context.path} -> {route.backend.name} "
            f"(auth={'required' if route.requires_auth else 'none'})"
        )
        return context.model_copy(update={"route": route})

    return stage


def authenticate(settings: Settings) -> Stage:
    def stage(context: ProxyContext) -> ProxyContext:
        if context.route is None or not context.route.requires_auth:
            return context
        identity = validate_bearer_token(
            context.header("authorization"), settings, context.correlation_id
        )
        return context.model_copy(update={"identity": identity})

    return stage


def rewrite_upstream_path(settings: Settings) -> Stage:
    def stage(context: ProxyContext) -> ProxyContext:
        upstream_path = rewrite_path(
            context.raw_path or context.path,
            settings.GATEWAY_PATH_PREFIX,
            settings.UPSTREAM_PATH_PREFIX,
        )
        return context.model_copy(update={"upstream_path": upstream_path})

    return stage


class ProxyPipeline:
    def __init__(self, stages: Sequence[Stage]) -> None:
        self._stages = tuple(stages)

    def run(self, context: ProxyContext) -> ProxyContext:
        for stage in self._stages:
            context = stage(context)
        return context


def build_proxy_pipeline(settings: Settings, route_table: RouteTable) -> ProxyPipeline:
    return ProxyPipeline(
        [
            resolve_route(route_table),
            authenticate(settings),
            rewrite_upstream_path(settings),
        ]
    )
