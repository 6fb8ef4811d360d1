"""Helpers shared by the gateway tests: settings and token minting."""

from __future__ import annotations

import time
from typing import Any

import jwt

from api_gateway_service.config import Environment, Settings

TEST_JWT_SECRET = "test-secret-key"

USER_SERVICE_URL = "http://user-service:8001"
WORKSHEET_SERVICE_URL = "http://worksheet-service:8002"
PAYMENT_SERVICE_URL = "http://payment-service:8003"
NOTIFICATION_SERVICE_URL = "http://notification-service:8004"
GATEWAY_PUBLIC_URL = "http://gateway.test:3000"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "ENVIRONMENT": Environment.TESTING,
        "JWT_SECRET_KEY": TEST_JWT_SECRET,
        "USER_SERVICE_URL": USER_SERVICE_URL,
        "WORKSHEET_SERVICE_URL": WORKSHEET_SERVICE_URL,
        "PAYMENT_SERVICE_URL": PAYMENT_SERVICE_URL,
        "NOTIFICATION_SERVICE_URL": NOTIFICATION_SERVICE_URL,
        "GATEWAY_PUBLIC_URL": GATEWAY_PUBLIC_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_token(
    user_id: str | None = "u1",
    role: str | None = "admin",
    secret: str = TEST_JWT_SECRET,
    expires_in: int | None = 3600,
    **claims: Any,
) -> str:
    """Mint an HS256 token shaped like the ones the user service issues."""
    payload: dict[str, Any] = dict(claims)
    if user_id is not None:
        payload["userId"] = user_id
    if role is not None:
        payload["role"] = role
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
