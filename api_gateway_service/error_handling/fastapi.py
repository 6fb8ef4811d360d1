"""FastAPI integration: GatewayError handlers and the last-resort error boundary."""

from __future__ import annotations

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse, Response

from api_gateway_service.error_handling.error_codes import ErrorCode
from api_gateway_service.error_handling.gateway_error import GatewayError
from api_gateway_service.logging_utils import create_service_logger

logger = create_service_logger("api_gateway.error_handling")

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.AUTHENTICATION_ERROR: 401,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.CONNECTION_ERROR: 502,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.CONFIGURATION_ERROR: 500,
}

GENERIC_ERROR_MESSAGE = "Internal server error"


def gateway_error_response(error: GatewayError) -> JSONResponse:
    """Render a GatewayError without any internal diagnostics."""
    detail = error.error_detail
    status_code = ERROR_CODE_TO_HTTP_STATUS.get(detail.error_code, 500)

    if detail.error_code == ErrorCode.AUTHENTICATION_ERROR:
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "message": detail.message},
        )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": detail.error_code.value,
                "message": detail.message,
                "correlation_id": str(detail.correlation_id),
            }
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        detail = exc.error_detail
        log = logger.info if detail.error_code == ErrorCode.AUTHENTICATION_ERROR else logger.warning
        log(
            f"{request.method} {request.url.path} failed: {exc}",
            error_code=detail.error_code.value,
            operation=detail.operation,
            details=detail.details,
            correlation_id=str(detail.correlation_id),
        )
        return gateway_error_response(exc)


class ErrorBoundaryMiddleware(BaseHTTPMiddleware):
    """
    Catches anything not already translated to a specific status and returns
    a generic 500 carrying only a message. Tracebacks stay in the logs.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except GatewayError as e:
            return gateway_error_response(e)
        except Exception as e:
            logger.error(
                f"Unhandled error for {request.method} {request.url.path}: {e}",
                exc_info=True,
                correlation_id=str(getattr(request.state, "correlation_id", "")),
            )
            return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})
