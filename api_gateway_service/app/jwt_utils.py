from __future__ import annotations

from typing import Any
from uuid import UUID

import jwt

from api_gateway_service.config import Settings
from api_gateway_service.error_handling import AuthErrorReason, raise_authentication_error
from api_gateway_service.logging_utils import create_service_logger
from api_gateway_service.models import Identity

logger = create_service_logger("api_gateway.jwt_utils")

UNAUTHORIZED_MESSAGE = "Unauthorized"
INVALID_TOKEN_MESSAGE = "Invalid token"


def extract_bearer_token(authorization: str | None, correlation_id: UUID) -> str:
    """Return the raw token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise_authentication_error(
            service="api_gateway_service",
            operation="extract_bearer_token",
            message=UNAUTHORIZED_MESSAGE,
            correlation_id=correlation_id,
            reason=AuthErrorReason.MISSING_HEADER,
        )

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise_authentication_error(
            service="api_gateway_service",
            operation="extract_bearer_token",
            message=UNAUTHORIZED_MESSAGE,
            correlation_id=correlation_id,
            reason=AuthErrorReason.MALFORMED_HEADER,
        )

    return parts[1]


def decode_and_validate_jwt(
    token: str, settings: Settings, correlation_id: UUID
) -> dict[str, Any]:
    """
    Verify signature and, when present, expiry of a token.

    Raises GatewayError (AUTHENTICATION_ERROR / invalid_token) on any
    verification failure.
    """
    try:
        return jwt.decode(
            token,
            settings.get_jwt_verification_key(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token", correlation_id=str(correlation_id))
        raise_authentication_error(
            service="api_gateway_service",
            operation="validate_jwt",
            message=INVALID_TOKEN_MESSAGE,
            correlation_id=correlation_id,
            reason=AuthErrorReason.INVALID_TOKEN,
            cause="token_expired",
        )
    except jwt.InvalidTokenError as e:
        logger.info(f"Rejected token: {type(e).__name__}", correlation_id=str(correlation_id))
        raise_authentication_error(
            service="api_gateway_service",
            operation="validate_jwt",
            message=INVALID_TOKEN_MESSAGE,
            correlation_id=correlation_id,
            reason=AuthErrorReason.INVALID_TOKEN,
            cause=type(e).__name__,
        )


def identity_from_claims(
    payload: dict[str, Any], settings: Settings, correlation_id: UUID
) -> Identity:
    user_id = payload.get(settings.JWT_USER_ID_CLAIM)
    if isinstance(user_id, int) and not isinstance(user_id, bool):
        user_id = str(user_id)
    if not isinstance(user_id, str) or not user_id:
        raise_authentication_error(
            service="api_gateway_service",
            operation="validate_jwt",
            message=INVALID_TOKEN_MESSAGE,
            correlation_id=correlation_id,
            reason=AuthErrorReason.INVALID_TOKEN,
            cause="missing_user_id",
        )

    role = payload.get(settings.JWT_ROLE_CLAIM)
    return Identity(user_id=user_id, role=str(role) if role else None)


def validate_bearer_token(
    authorization: str | None, settings: Settings, correlation_id: UUID
) -> Identity:
    """Turn an Authorization header value into an Identity, or raise a 401 GatewayError."""
    token = extract_bearer_token(authorization, correlation_id)
    payload = decode_and_validate_jwt(token, settings, correlation_id)
    return identity_from_claims(payload, settings, correlation_id)
