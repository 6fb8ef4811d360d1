"""
Tests for outbound request construction and the backend call.

Backends are mocked with respx; every test asserts on what actually left the
gateway.
"""

from __future__ import annotations

import json
from uuid import uuid4

import httpx
import pytest
from prometheus_client import CollectorRegistry
from respx import MockRouter

from api_gateway_service.app.metrics import GatewayMetrics
from api_gateway_service.app.pipeline import ProxyContext, build_proxy_pipeline
from api_gateway_service.error_handling import ErrorCode, GatewayError
from api_gateway_service.implementations.proxy_forwarder import (
    ProxyForwarder,
    build_outbound_request,
)
from api_gateway_service.models import OutboundRequest
from api_gateway_service.routing import build_route_table
from api_gateway_service.tests.utils import USER_SERVICE_URL, make_settings, make_token


def resolved_context(
    method: str,
    path: str,
    headers: list[tuple[str, str]] | None = None,
    query: str = "",
    body: bytes = b"",
) -> ProxyContext:
    settings = make_settings()
    pipeline = build_proxy_pipeline(settings, build_route_table(settings))
    return pipeline.run(
        ProxyContext(
            method=method,
            path=path,
            query=query,
            headers=tuple(
                (name.encode("latin-1"), value.encode("latin-1")) for name, value in headers or ()
            ),
            body=body,
            correlation_id=uuid4(),
        )
    )


def header_names(outbound: OutboundRequest) -> list[str]:
    return [name.decode("latin-1").lower() for name, _ in outbound.headers]


def header_map(outbound: OutboundRequest) -> dict[str, str]:
    return {
        name.decode("latin-1").lower(): value.decode("utf-8") for name, value in outbound.headers
    }


class TestBuildOutboundRequest:
    def test_identity_headers_added(self):
        token = make_token("u1", "admin")
        outbound = build_outbound_request(
            resolved_context("GET", "/v1/user/profile", [("authorization", f"Bearer {token}")])
        )

        headers = header_map(outbound)
        assert headers["x-user-id"] == "u1"
        assert headers["x-user-role"] == "admin"
        assert headers["authorization"] == f"Bearer {token}"
        assert outbound.url == f"{USER_SERVICE_URL}/api/user/profile"
        assert outbound.backend == "user"

    def test_role_header_omitted_without_role(self):
        token = make_token("u1", None)
        outbound = build_outbound_request(
            resolved_context("GET", "/v1/user/profile", [("authorization", f"Bearer {token}")])
        )
        assert "x-user-role" not in header_names(outbound)

    def test_client_identity_headers_are_stripped(self):
        outbound = build_outbound_request(
            resolved_context(
                "POST",
                "/v1/user/login",
                [("X-User-Id", "spoofed"), ("x-user-role", "admin")],
            )
        )
        assert "x-user-id" not in header_names(outbound)
        assert "x-user-role" not in header_names(outbound)

    def test_hop_by_hop_and_host_are_stripped(self):
        outbound = build_outbound_request(
            resolved_context(
                "POST",
                "/v1/user/login",
                [
                    ("host", "gateway"),
                    ("connection", "keep-alive"),
                    ("content-length", "2"),
                    ("content-type", "application/json"),
                ],
                body=b"{}",
            )
        )
        names = header_names(outbound)
        assert "host" not in names
        assert "connection" not in names
        assert "content-length" not in names
        assert "content-type" in names
        assert outbound.content == b"{}"

    def test_accept_encoding_defaults_to_identity(self):
        outbound = build_outbound_request(resolved_context("POST", "/v1/user/login"))
        assert header_map(outbound)["accept-encoding"] == "identity"

    def test_caller_accept_encoding_is_kept(self):
        outbound = build_outbound_request(
            resolved_context("POST", "/v1/user/login", [("Accept-Encoding", "gzip")])
        )
        assert (b"Accept-Encoding", b"gzip") in outbound.headers
        assert header_map(outbound)["accept-encoding"] == "gzip"

    def test_query_string_is_kept(self):
        outbound = build_outbound_request(
            resolved_context("GET", "/v1/notification/inbox", query="page=2&size=10")
        )
        assert outbound.url.endswith("/api/notification/inbox?page=2&size=10")

    def test_non_ascii_header_value_is_passed_as_bytes(self):
        outbound = build_outbound_request(
            resolved_context("GET", "/v1/notification/inbox", [("x-display-name", "José")])
        )
        assert (b"x-display-name", b"Jos\xe9") in outbound.headers

    def test_unresolved_context_is_rejected(self):
        with pytest.raises(ValueError):
            build_outbound_request(
                ProxyContext(method="GET", path="/v1/user", correlation_id=uuid4())
            )


@pytest.fixture
def metrics() -> GatewayMetrics:
    return GatewayMetrics(registry=CollectorRegistry())


@pytest.fixture
async def http_client():
    async with httpx.AsyncClient() as client:
        yield client


def outbound(method: str = "GET", path: str = "/api/user/profile", **kwargs) -> OutboundRequest:
    return OutboundRequest(
        method=method,
        url=f"{USER_SERVICE_URL}{path}",
        headers=kwargs.pop("headers", ((b"x-user-id", b"u1"),)),
        backend="user",
        **kwargs,
    )


class TestProxyForwarder:
    async def test_relays_status_body_and_headers(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            return_value=httpx.Response(
                418,
                content=b'{"teapot": true}',
                headers=[
                    ("content-type", "application/json"),
                    ("set-cookie", "a=1"),
                    ("set-cookie", "b=2"),
                ],
            )
        )

        response = await ProxyForwarder(http_client, metrics).forward(outbound(), uuid4())

        assert response.status_code == 418
        assert response.content == b'{"teapot": true}'
        assert (b"set-cookie", b"a=1") in response.headers
        assert (b"set-cookie", b"b=2") in response.headers
        assert b"content-length" not in [name.lower() for name, _ in response.headers]

    async def test_sends_method_headers_and_body(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        route = respx_mock.put(f"{USER_SERVICE_URL}/api/user/profile").mock(
            return_value=httpx.Response(204)
        )

        await ProxyForwarder(http_client, metrics).forward(
            outbound("PUT", content=b'{"name": "x"}'), uuid4()
        )

        request = route.calls.last.request
        assert request.content == b'{"name": "x"}'
        assert request.headers["x-user-id"] == "u1"

    async def test_single_attempt_on_connection_error(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        route = respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(GatewayError) as exc_info:
            await ProxyForwarder(http_client, metrics).forward(outbound(), uuid4())

        assert exc_info.value.error_detail.error_code == ErrorCode.CONNECTION_ERROR
        assert exc_info.value.error_detail.message == "user service unavailable"
        assert route.call_count == 1

    async def test_timeout(self, http_client, metrics, respx_mock: MockRouter):
        respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with pytest.raises(GatewayError) as exc_info:
            await ProxyForwarder(http_client, metrics, timeout_seconds=0.5).forward(
                outbound(), uuid4()
            )

        detail = exc_info.value.error_detail
        assert detail.error_code == ErrorCode.TIMEOUT
        assert detail.details["timeout_seconds"] == 0.5

    async def test_backend_error_status_is_relayed(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            return_value=httpx.Response(500, json={"error": "backend exploded"})
        )

        response = await ProxyForwarder(http_client, metrics).forward(outbound(), uuid4())

        assert response.status_code == 500
        assert json.loads(response.content) == {"error": "backend exploded"}

    async def test_metrics_recorded(self, http_client, respx_mock: MockRouter):
        registry = CollectorRegistry()
        metrics = GatewayMetrics(registry=registry)
        respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            side_effect=httpx.ConnectError("down")
        )

        with pytest.raises(GatewayError):
            await ProxyForwarder(http_client, metrics).forward(outbound(), uuid4())

        assert (
            registry.get_sample_value(
                "gateway_api_errors_total",
                {"backend": "user", "error_type": "upstream_unavailable"},
            )
            == 1.0
        )


class TestNonAsciiHeaders:
    async def test_utf8_response_header_bytes_are_kept(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        disposition = 'attachment; filename="übung-練習.pdf"'.encode("utf-8")
        respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            return_value=httpx.Response(
                200, content=b"%PDF", headers=[(b"content-disposition", disposition)]
            )
        )

        response = await ProxyForwarder(http_client, metrics).forward(outbound(), uuid4())

        assert (b"content-disposition", disposition) in response.headers

    async def test_latin1_request_header_is_sent_unchanged(
        self, http_client, metrics, respx_mock: MockRouter
    ):
        route = respx_mock.get(f"{USER_SERVICE_URL}/api/user/profile").mock(
            return_value=httpx.Response(200)
        )

        await ProxyForwarder(http_client, metrics).forward(
            outbound(headers=((b"x-display-name", b"Jos\xe9"),)), uuid4()
        )

        assert (b"x-display-name", b"Jos\xe9") in route.calls.last.request.headers.raw
