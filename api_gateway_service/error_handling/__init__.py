"""Error handling for the API Gateway Service."""

from api_gateway_service.error_handling.error_codes import AuthErrorReason, ErrorCode
from api_gateway_service.error_handling.factories import (
    raise_authentication_error,
    raise_configuration_error,
    raise_connection_error,
    raise_resource_not_found,
    raise_timeout_error,
)
from api_gateway_service.error_handling.gateway_error import GatewayError
from api_gateway_service.error_handling.models import ErrorDetail

__all__ = [
    "AuthErrorReason",
    "ErrorCode",
    "ErrorDetail",
    "GatewayError",
    "raise_authentication_error",
    "raise_configuration_error",
    "raise_connection_error",
    "raise_resource_not_found",
    "raise_timeout_error",
]
