"""
Configuration for API Gateway Service.

Uses Pydantic settings for environment-based configuration. Each field accepts
the gateway-prefixed variable first and falls back to the plain variable names
used by the deployment (``JWT_SECRET``, ``USER_SERVICE_URL``, ``PORT``...).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from api_gateway_service.models import BackendDescriptor


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


def _split_csv(value: object) -> object:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class Settings(BaseSettings):
    """Configuration settings for API Gateway Service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="API_GATEWAY_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Service identity
    SERVICE_NAME: str = "api-gateway"
    SERVICE_TITLE: str = "API Gateway"
    SERVICE_VERSION: str = "1.0.0"

    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        validation_alias=AliasChoices("ENVIRONMENT", "API_GATEWAY_ENVIRONMENT"),
        description="Runtime environment for the service",
    )

    # HTTP server configuration
    HTTP_HOST: str = Field(default="0.0.0.0", description="HTTP server host")
    HTTP_PORT: int = Field(
        default=3000,
        description="HTTP server port",
        validation_alias=AliasChoices("API_GATEWAY_HTTP_PORT", "PORT"),
    )

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Security
    JWT_SECRET_KEY: SecretStr | None = Field(
        default=None,
        description="Shared secret used to verify bearer tokens. Required at startup.",
        validation_alias=AliasChoices("API_GATEWAY_JWT_SECRET_KEY", "JWT_SECRET"),
    )
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT signing algorithm")
    JWT_USER_ID_CLAIM: str = Field(default="userId", description="Claim carrying the user id")
    JWT_ROLE_CLAIM: str = Field(default="role", description="Claim carrying the optional role")

    # CORS configuration
    CORS_ORIGINS: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:4005", "http://localhost:3001"],
        description="Allowed CORS origins (comma separated in the environment)",
        validation_alias=AliasChoices("API_GATEWAY_CORS_ORIGINS", "CORS_ORIGINS"),
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=True, description="Allow credentials in CORS requests"
    )
    CORS_ALLOW_METHODS: Annotated[list[str], NoDecode] = Field(
        default=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        description="Allowed HTTP methods for CORS",
    )
    CORS_ALLOW_HEADERS: Annotated[list[str], NoDecode] = Field(
        default=["Content-Type", "Authorization"],
        description="Allowed headers for CORS requests",
    )

    # Externally reachable base URL of this gateway
    GATEWAY_PUBLIC_URL: str = Field(
        default="http://localhost:3000",
        description="Base URL used in the merged documentation and the docs UI",
        validation_alias=AliasChoices("API_GATEWAY_PUBLIC_URL", "API_GATEWAY_URL"),
    )

    # Service URLs
    USER_SERVICE_URL: str = Field(
        default="http://user_service:8000",
        description="User Service base URL",
        validation_alias=AliasChoices("API_GATEWAY_USER_SERVICE_URL", "USER_SERVICE_URL"),
    )
    WORKSHEET_SERVICE_URL: str = Field(
        default="http://worksheet_service:8000",
        description="Worksheet Service base URL",
        validation_alias=AliasChoices(
            "API_GATEWAY_WORKSHEET_SERVICE_URL", "WORKSHEET_SERVICE_URL"
        ),
    )
    PAYMENT_SERVICE_URL: str = Field(
        default="http://payment_service:8000",
        description="Payment Service base URL",
        validation_alias=AliasChoices("API_GATEWAY_PAYMENT_SERVICE_URL", "PAYMENT_SERVICE_URL"),
    )
    NOTIFICATION_SERVICE_URL: str = Field(
        default="http://notification_service:8000",
        description="Notification Service base URL",
        validation_alias=AliasChoices(
            "API_GATEWAY_NOTIFICATION_SERVICE_URL", "NOTIFICATION_SERVICE_URL"
        ),
    )
    DOCS_PATH: str = Field(
        default="/docs/swagger.json",
        description="Path of the OpenAPI document on every backend service",
    )

    # Path rewriting
    GATEWAY_PATH_PREFIX: str = Field(default="/v1", description="Client-facing version prefix")
    UPSTREAM_PATH_PREFIX: str = Field(default="/api", description="Backend-facing API prefix")

    # HTTP Client Timeouts
    PROXY_TIMEOUT_SECONDS: float = 30.0
    HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS: float = 10.0
    DOCS_FETCH_TIMEOUT_SECONDS: float = 10.0

    @field_validator("CORS_ORIGINS", "CORS_ALLOW_METHODS", "CORS_ALLOW_HEADERS", mode="before")
    @classmethod
    def _parse_list(cls, value: object) -> object:
        return _split_csv(value)

    @field_validator(
        "USER_SERVICE_URL",
        "WORKSHEET_SERVICE_URL",
        "PAYMENT_SERVICE_URL",
        "NOTIFICATION_SERVICE_URL",
        "GATEWAY_PUBLIC_URL",
    )
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def get_jwt_verification_key(self) -> str:
        """Return the token verification secret.

        Raises:
            ValueError: when no secret is configured. There is no
                fallback value.
        """
        if self.JWT_SECRET_KEY is None or not self.JWT_SECRET_KEY.get_secret_value().strip():
            raise ValueError(
                "JWT_SECRET_KEY must be configured (API_GATEWAY_JWT_SECRET_KEY or JWT_SECRET)"
            )
        return self.JWT_SECRET_KEY.get_secret_value()

    def backend_descriptors(self) -> list[BackendDescriptor]:
        """Backends in documentation merge order."""
        backends = [
            ("user", self.USER_SERVICE_URL),
            ("worksheet", self.WORKSHEET_SERVICE_URL),
            ("payment", self.PAYMENT_SERVICE_URL),
            ("notification", self.NOTIFICATION_SERVICE_URL),
        ]
        return [
            BackendDescriptor(name=name, base_url=url, docs_url=f"{url}{self.DOCS_PATH}")
            for name, url in backends
        ]


# Global settings instance
settings = Settings()
