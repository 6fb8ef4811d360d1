"""Core exception type for the API Gateway."""

from __future__ import annotations

from api_gateway_service.error_handling.models import ErrorDetail


class GatewayError(Exception):
    """
    Exception carrying a structured ErrorDetail.

    Every failure the gateway translates on purpose (auth, routing, upstream)
    is raised as a GatewayError; anything else reaching the edge of the app is
    treated as unexpected by the error boundary.
    """

    def __init__(self, error_detail: ErrorDetail) -> None:
        super().__init__(error_detail.message)
        self.error_detail = error_detail

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.error_detail.message}"

    @property
    def error_code(self) -> str:
        return self.error_detail.error_code.value

    @property
    def correlation_id(self) -> str:
        return str(self.error_detail.correlation_id)

    @property
    def service(self) -> str:
        return self.error_detail.service

    @property
    def operation(self) -> str:
        return self.error_detail.operation
