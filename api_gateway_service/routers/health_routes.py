"""Health, service metadata and metrics routes for API Gateway Service."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from api_gateway_service.config import Settings
from api_gateway_service.logging_utils import create_service_logger

router = APIRouter(tags=["Health"], route_class=DishkaRoute)
logger = create_service_logger("api_gateway.routers.health")


@router.get("/health")
async def health_check(config: FromDishka[Settings]) -> dict[str, str]:
    """Liveness check. Does not probe the backends."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "service": config.SERVICE_NAME,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/")
async def service_info(config: FromDishka[Settings]) -> dict[str, Any]:
    gw = config.GATEWAY_PATH_PREFIX.rstrip("/")
    return {
        "service": config.SERVICE_TITLE,
        "version": config.SERVICE_VERSION,
        "endpoints": {
            "health": "/health",
            "docs": "/api-docs",
            "user": f"{gw}/user",
            "worksheet": f"{gw}/worksheet",
            "payment": f"{gw}/payment",
            "notification": f"{gw}/notification",
        },
    }


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics(registry: FromDishka[CollectorRegistry]) -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    return PlainTextResponse(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
