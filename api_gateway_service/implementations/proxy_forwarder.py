"""Proxy forwarding: outbound request construction and the single backend call.

Header mapping applied to every proxied request:

- stripped: hop-by-hop headers, ``host``, ``content-length`` and any
  client-supplied identity headers (``x-user-id``, ``x-user-role``)
- added: ``x-user-id`` and, when the token carries one, ``x-user-role``;
  only for requests that were authenticated
- everything else, ``authorization`` included, passes through unchanged
- ``accept-encoding: identity`` when the caller sent no accept-encoding, so the
  relayed body bytes are never compressed beyond what the caller asked for

Headers travel as the raw byte pairs received on either side, so values that
are not ASCII (UTF-8 filenames in content-disposition, for example) are
relayed without being decoded and re-encoded.

Bodies are read completely before forwarding and responses are buffered
before relaying. That is fine for the JSON payloads these backends exchange
but is not suitable for large uploads.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from uuid import UUID

import httpx

from api_gateway_service.app.pipeline import ProxyContext
from api_gateway_service.error_handling import raise_connection_error, raise_timeout_error
from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.models import OutboundRequest, UpstreamResponse
from api_gateway_service.protocols import MetricsProtocol

logger = create_service_logger("api_gateway.proxy_forwarder")

HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)
USER_ID_HEADER = "x-user-id"
USER_ROLE_HEADER = "x-user-role"

def _encoded(names: Iterable[str]) -> frozenset[bytes]:
    return frozenset(name.encode("latin-1") for name in names)


# Header names are compared as raw lowercase bytes; values are never decoded
_STRIPPED_REQUEST_HEADERS = _encoded(
    HOP_BY_HOP_HEADERS | {"host", "content-length", USER_ID_HEADER, USER_ROLE_HEADER}
)
_STRIPPED_RESPONSE_HEADERS = _encoded(HOP_BY_HOP_HEADERS | {"content-length"})


def build_outbound_request(context: ProxyContext) -> OutboundRequest:
    """Build the immutable request sent to the resolved backend."""
    if context.route is None or context.upstream_path is None:
        raise ValueError("Proxy context has not been resolved")

    headers = [
        (name, value)
        for name, value in context.headers
        if name.lower() not in _STRIPPED_REQUEST_HEADERS
    ]
    if not any(name.lower() == b"accept-encoding" for name, _ in headers):
        headers.append((b"accept-encoding", b"identity"))
    if context.identity is not None:
        headers.append((USER_ID_HEADER.encode(), context.identity.user_id.encode("utf-8")))
        if context.identity.role:
            headers.append((USER_ROLE_HEADER.encode(), context.identity.role.encode("utf-8")))

    url = f"{context.route.backend.base_url}{context.upstream_path}"
    if context.query:
        url = f"{url}?{context.query}"

    return OutboundRequest(
        method=context.method,
        url=url,
        headers=tuple(headers),
        content=context.body,
        backend=context.route.backend.name,
    )


class ProxyForwarder:
    """Issues exactly one backend call per proxied request. No retries."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        metrics: MetricsProtocol,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
    ) -> None:
        self._client = client
        self._metrics = metrics
        self._timeout_seconds = timeout_seconds
        self._timeout = httpx.Timeout(
            timeout_seconds, connect=min(connect_timeout_seconds, timeout_seconds)
        )

    async def forward(self, outbound: OutboundRequest, correlation_id: UUID) -> UpstreamResponse:
        request = self._client.build_request(
            method=outbound.method,
            url=outbound.url,
            headers=list(outbound.headers),
            content=outbound.content or None,
            timeout=self._timeout,
        )

        started = time.perf_counter()
        try:
            response = await self._client.send(request, stream=True)
            try:
                content = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()
        except httpx.TimeoutException as e:
            self._record_failure(outbound, "upstream_timeout", started)
            logger.warning(
                f"Timeout proxying {outbound.method} to {outbound.backend}: {type(e).__name__}",
                correlation_id=str(correlation_id),
            )
            raise_timeout_error(
                service="api_gateway_service",
                operation="forward_request",
                timeout_seconds=self._timeout_seconds,
                message=f"{outbound.backend} service timed out",
                correlation_id=correlation_id,
                backend=outbound.backend,
            )
        except httpx.TransportError as e:
            self._record_failure(outbound, "upstream_unavailable", started)
            logger.warning(
                f"{outbound.backend} unreachable for {outbound.method}: {type(e).__name__}",
                correlation_id=str(correlation_id),
            )
            raise_connection_error(
                service="api_gateway_service",
                operation="forward_request",
                target=outbound.backend,
                message=f"{outbound.backend} service unavailable",
                correlation_id=correlation_id,
            )

        self._metrics.downstream_service_call_duration_seconds.labels(
            service=outbound.backend, method=outbound.method
        ).observe(time.perf_counter() - started)
        self._metrics.downstream_service_calls_total.labels(
            service=outbound.backend,
            method=outbound.method,
            status_code=str(response.status_code),
        ).inc()

        return UpstreamResponse(
            status_code=response.status_code,
            headers=tuple(
                (name, value)
                for name, value in response.headers.raw
                if name.lower() not in _STRIPPED_RESPONSE_HEADERS
            ),
            content=content,
        )

    def _record_failure(self, outbound: OutboundRequest, error_type: str, started: float) -> None:
        self._metrics.downstream_service_call_duration_seconds.labels(
            service=outbound.backend, method=outbound.method
        ).observe(time.perf_counter() - started)
        self._metrics.api_errors_total.labels(
            backend=outbound.backend, error_type=error_type
        ).inc()
