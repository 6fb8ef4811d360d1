"""
Factory functions that build an ErrorDetail and raise GatewayError.

Each factory takes the raising service and operation, a human-readable
message and the request correlation id; extra keyword arguments end up in
``ErrorDetail.details`` and are only ever logged, never returned to clients.
"""

from __future__ import annotations

from typing import Any, NoReturn
from uuid import UUID

from api_gateway_service.error_handling.error_codes import AuthErrorReason, ErrorCode
from api_gateway_service.error_handling.gateway_error import GatewayError
from api_gateway_service.error_handling.models import ErrorDetail


def _raise(
    error_code: ErrorCode,
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID,
    **details: Any,
) -> NoReturn:
    raise GatewayError(
        ErrorDetail(
            error_code=error_code,
            message=message,
            correlation_id=correlation_id,
            service=service,
            operation=operation,
            details=details,
        )
    )


def raise_configuration_error(
    service: str,
    operation: str,
    config_key: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.CONFIGURATION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        config_key=config_key,
        **additional_context,
    )


def raise_authentication_error(
    service: str,
    operation: str,
    message: str,
    correlation_id: UUID,
    reason: AuthErrorReason,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.AUTHENTICATION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        reason=reason.value,
        **additional_context,
    )


def raise_resource_not_found(
    service: str,
    operation: str,
    resource_type: str,
    resource_id: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.RESOURCE_NOT_FOUND,
        service,
        operation,
        f"{resource_type} '{resource_id}' not found",
        correlation_id,
        resource_type=resource_type,
        resource_id=resource_id,
        **additional_context,
    )


def raise_connection_error(
    service: str,
    operation: str,
    target: str,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.CONNECTION_ERROR,
        service,
        operation,
        message,
        correlation_id,
        target=target,
        **additional_context,
    )


def raise_timeout_error(
    service: str,
    operation: str,
    timeout_seconds: float,
    message: str,
    correlation_id: UUID,
    **additional_context: Any,
) -> NoReturn:
    _raise(
        ErrorCode.TIMEOUT,
        service,
        operation,
        message,
        correlation_id,
        timeout_seconds=timeout_seconds,
        **additional_context,
    )
