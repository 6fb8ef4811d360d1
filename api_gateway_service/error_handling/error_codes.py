"""
Centralized error code definitions for the API Gateway.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"

    # Upstream (backend) failures
    CONNECTION_ERROR = "CONNECTION_ERROR"
    TIMEOUT = "TIMEOUT"


class AuthErrorReason(str, Enum):
    """
    Why a bearer credential was rejected. All of them surface as 401.
    """

    MISSING_HEADER = "missing_header"
    MALFORMED_HEADER = "malformed_header"
    INVALID_TOKEN = "invalid_token"
