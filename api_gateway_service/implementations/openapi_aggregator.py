"""
OpenAPI aggregation across backend services.

One fetch per backend, all started together and all awaited. A branch that
fails (connection error, timeout, non-2xx, body that is not a JSON object) is
logged and dropped; the rest still produce a document. Successful branches are
merged in configured backend order, later backends overwriting earlier ones
on key collisions. The gateway's bearer security scheme is always added last.

Nothing is cached: every call re-fetches every backend.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import httpx

from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.models import BackendDescriptor
from api_gateway_service.protocols import MetricsProtocol

logger = create_service_logger("api_gateway.openapi_aggregator")

OPENAPI_VERSION = "3.0.0"
BEARER_SCHEME_NAME = "bearerAuth"
BEARER_SECURITY_SCHEME: dict[str, str] = {
    "type": "http",
    "scheme": "bearer",
    "bearerFormat": "JWT",
}


class DocumentationFetchError(Exception):
    """A backend returned something that is not an OpenAPI object."""


class OpenApiAggregator:
    def __init__(
        self,
        client: httpx.AsyncClient,
        backends: Sequence[BackendDescriptor],
        public_url: str,
        metrics: MetricsProtocol,
        timeout_seconds: float = 10.0,
        title: str = "API Docs",
        version: str = "1.0.0",
    ) -> None:
        self._client = client
        self._backends = tuple(backends)
        self._public_url = public_url
        self._metrics = metrics
        self._timeout_seconds = timeout_seconds
        self._title = title
        self._version = version

    async def fetch_document(self, backend: BackendDescriptor) -> dict[str, Any]:
        response = await self._client.get(
            backend.docs_url, timeout=self._timeout_seconds, follow_redirects=True
        )
        response.raise_for_status()
        document = response.json()
        if not isinstance(document, dict):
            raise DocumentationFetchError(
                f"{backend.name} returned {type(document).__name__}, expected an object"
            )
        return document

    async def aggregate(self) -> dict[str, Any]:
        results = await asyncio.gather(
            *(self.fetch_document(backend) for backend in self._backends),
            return_exceptions=True,
        )

        documents: list[dict[str, Any]] = []
        for backend, result in zip(self._backends, results, strict=True):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(
                    f"Skipping {backend.name} documentation: {type(result).__name__}: {result}"
                )
                self._metrics.docs_branch_failures_total.labels(service=backend.name).inc()
                continue
            documents.append(result)

        if len(documents) < len(self._backends):
            logger.info(
                f"Serving partial documentation from {len(documents)}/{len(self._backends)} "
                "backends"
            )

        return self.merge(documents)

    def merge(self, documents: Sequence[dict[str, Any]]) -> dict[str, Any]:
        paths: dict[str, Any] = {}
        components: dict[str, Any] = {}
        for document in documents:
            doc_paths = document.get("paths")
            if isinstance(doc_paths, dict):
                paths.update(doc_paths)
            doc_components = document.get("components")
            if isinstance(doc_components, dict):
                components.update(doc_components)

        return {
            "openapi": OPENAPI_VERSION,
            "info": {"title": self._title, "version": self._version},
            "servers": [{"url": self._public_url, "description": "Local"}],
            "components": {
                **components,
                "securitySchemes": {BEARER_SCHEME_NAME: dict(BEARER_SECURITY_SCHEME)},
            },
            "security": [{BEARER_SCHEME_NAME: []}],
            "paths": paths,
        }
