"""Merged API documentation routes."""

from __future__ import annotations

from typing import Any

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import HTMLResponse

from api_gateway_service.config import Settings
from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.protocols import DocsAggregatorProtocol

router = APIRouter(tags=["Documentation"], route_class=DishkaRoute)
logger = create_service_logger("api_gateway.routers.docs")


@router.get("/swagger.json")
async def merged_openapi(aggregator: FromDishka[DocsAggregatorProtocol]) -> dict[str, Any]:
    """
    OpenAPI document merged from every backend's own document.

    Always 200: backends that cannot be reached are left out of the result.
    """
    return await aggregator.aggregate()


@router.get("/api-docs", response_class=HTMLResponse)
@router.get("/api-docs/", response_class=HTMLResponse, include_in_schema=False)
async def api_docs(config: FromDishka[Settings]) -> HTMLResponse:
    """Swagger UI rendered against the merged document."""
    return get_swagger_ui_html(
        openapi_url=f"{config.GATEWAY_PUBLIC_URL}/swagger.json",
        title=f"{config.SERVICE_TITLE} - API Docs",
    )
