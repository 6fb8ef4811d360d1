"""Structured error payload carried by GatewayError."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api_gateway_service.error_handling.error_codes import ErrorCode


class ErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    error_code: ErrorCode
    message: str
    correlation_id: UUID
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    service: str
    operation: str
    details: dict[str, Any] = Field(default_factory=dict)
