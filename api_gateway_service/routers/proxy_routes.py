"""
Catch-all proxy route.

Every request not served by the gateway's own endpoints lands here and goes
through the request pipeline (route resolution, authentication, path
rewrite) before being forwarded to its backend. Registered last so the
gateway's own routes take precedence.
"""

from __future__ import annotations

from uuid import UUID

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Request
from starlette.responses import Response

from api_gateway_service.app.pipeline import ProxyContext, ProxyPipeline
from api_gateway_service.error_handling import GatewayError
from api_gateway_service.error_handling.fastapi import ERROR_CODE_TO_HTTP_STATUS
from api_gateway_service.implementations.proxy_forwarder import build_outbound_request
from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.models import UpstreamResponse
from api_gateway_service.protocols import MetricsProtocol, ProxyForwarderProtocol
from api_gateway_service.routing import RouteTable

router = APIRouter(route_class=DishkaRoute)
logger = create_service_logger("api_gateway.proxy_routes")

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def to_response(upstream: UpstreamResponse) -> Response:
    """Relay a backend response, keeping repeated headers such as set-cookie."""
    response = Response(content=upstream.content, status_code=upstream.status_code)
    response.raw_headers.extend((name.lower(), value) for name, value in upstream.headers)
    return response


def _raw_path(request: Request) -> str | None:
    # Some servers include the query string in raw_path
    raw = request.scope.get("raw_path")
    if not raw:
        return None
    return raw.decode("latin-1").split("?", 1)[0]


@router.api_route("/{full_path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy_request(
    full_path: str,
    request: Request,
    pipeline: FromDishka[ProxyPipeline],
    route_table: FromDishka[RouteTable],
    forwarder: FromDishka[ProxyForwarderProtocol],
    metrics: FromDishka[MetricsProtocol],
    correlation_id: FromDishka[UUID],
) -> Response:
    context = ProxyContext(
        method=request.method,
        path=request.url.path,
        raw_path=_raw_path(request),
        query=request.url.query,
        headers=tuple(request.headers.raw),
        body=await request.body(),
        correlation_id=correlation_id,
    )

    # Label only; the pipeline does the authoritative resolution
    route = route_table.match(context.method, context.path)
    backend = route.backend.name if route is not None else "unmatched"
    try:
        context = pipeline.run(context)
        logger.info(f"Proxying {context.method} {context.path} to {backend}")
        upstream = await forwarder.forward(build_outbound_request(context), correlation_id)
    except GatewayError as e:
        metrics.http_requests_total.labels(
            method=request.method,
            backend=backend,
            http_status=str(ERROR_CODE_TO_HTTP_STATUS.get(e.error_detail.error_code, 500)),
        ).inc()
        raise

    metrics.http_requests_total.labels(
        method=request.method, backend=backend, http_status=str(upstream.status_code)
    ).inc()
    return to_response(upstream)
