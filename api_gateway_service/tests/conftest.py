"""
Shared fixtures for API Gateway Service tests.

Every app is built with its own Prometheus registry so that creating several
apps in one session never registers the same metric twice.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry

from api_gateway_service.app.main import create_app
from api_gateway_service.config import Settings
from api_gateway_service.tests.utils import bearer, make_settings, make_token


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def app(test_settings: Settings, registry: CollectorRegistry) -> FastAPI:
    return create_app(test_settings, registry=registry)


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await app.state.dishka_container.close()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return bearer(make_token())
