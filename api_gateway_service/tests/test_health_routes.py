"""
Tests for health, service info and metrics routes.

Uses FastAPI's TestClient so that the application lifespan runs and the DI
container is closed on exit.
"""

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from respx import MockRouter


class TestHealthRoutes:
    @pytest.fixture
    def test_client(self, app: FastAPI):
        with TestClient(app) as client:
            yield client

    def test_health_returns_healthy_status(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "api-gateway"
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None

    def test_health_does_not_depend_on_backends(self, test_client, respx_mock: MockRouter):
        # No backend routes are mocked: any outbound call would fail the test
        for _ in range(3):
            response = test_client.get("/health")
            assert response.status_code == 200
            assert response.json()["status"] == "healthy"

    def test_repeated_health_calls_agree(self, test_client):
        first = test_client.get("/health").json()
        second = test_client.get("/health").json()

        assert first["status"] == second["status"] == "healthy"
        assert first["service"] == second["service"]
        assert datetime.fromisoformat(second["timestamp"]) >= datetime.fromisoformat(
            first["timestamp"]
        )

    def test_root_describes_service(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "API Gateway"
        assert data["version"] == "1.0.0"
        assert data["endpoints"]["health"] == "/health"
        assert data["endpoints"]["docs"] == "/api-docs"
        assert data["endpoints"]["user"] == "/v1/user"
        assert data["endpoints"]["notification"] == "/v1/notification"

    def test_post_to_root_is_not_served_by_info_route(self, test_client):
        response = test_client.post("/")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"

    def test_metrics_endpoint_exposes_gateway_metrics(self, test_client):
        test_client.get("/v1/user/profile")

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "gateway_http_requests_total" in response.text

    def test_framework_docs_are_disabled(self, test_client):
        for path in ("/docs", "/redoc", "/openapi.json"):
            assert test_client.get(path).status_code == 404
