"""Middleware for API Gateway Service."""

from __future__ import annotations

from uuid import UUID, uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from structlog.contextvars import bound_contextvars

from api_gateway_service.logging_utils import create_service_logger

logger = create_service_logger("api_gateway.middleware")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Ensure every request has a correlation ID as UUID.

    The id is kept on ``request.state`` and bound into the log context. Responses
    are left untouched so that proxied responses reach the caller as the backend
    produced them.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        x_correlation_id = request.headers.get("X-Correlation-ID")
        if x_correlation_id:
            try:
                correlation_id = UUID(x_correlation_id)
            except ValueError:
                logger.warning(
                    f"Invalid correlation ID format: {x_correlation_id}, generating new one"
                )
                correlation_id = uuid4()
        else:
            correlation_id = uuid4()

        request.state.correlation_id = correlation_id

        with bound_contextvars(correlation_id=str(correlation_id)):
            return await call_next(request)
