"""Startup setup for API Gateway Service."""

from __future__ import annotations

from uuid import uuid4

from dishka import AsyncContainer, make_async_container
from dishka.integrations.fastapi import FastapiProvider, setup_dishka
from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from api_gateway_service.app.di import ApiGatewayProvider, RequestContextProvider
from api_gateway_service.config import Settings
from api_gateway_service.error_handling import raise_configuration_error
from api_gateway_service.logging_utils import create_service_logger

logger = create_service_logger("api_gateway_service.startup")


def validate_startup_configuration(settings: Settings) -> None:
    """Refuse to start without a token verification secret."""
    try:
        settings.get_jwt_verification_key()
    except ValueError as e:
        logger.critical(f"Invalid startup configuration: {e}")
        raise_configuration_error(
            service="api_gateway_service",
            operation="validate_startup_configuration",
            config_key="JWT_SECRET_KEY",
            message=str(e),
            correlation_id=uuid4(),
        )


def create_di_container(
    settings: Settings, registry: CollectorRegistry | None = None
) -> AsyncContainer:
    """Create and configure the DI container."""
    try:
        logger.info("Creating DI container...")
        container = make_async_container(
            ApiGatewayProvider(settings, registry),
            RequestContextProvider(),
            FastapiProvider(),  # Provides Request object to context
        )
        logger.info("DI container created successfully")
        return container
    except Exception as e:
        logger.critical(f"Failed to create DI container: {e}", exc_info=True)
        raise


def setup_dependency_injection(app: FastAPI, container: AsyncContainer) -> None:
    """Setup Dishka integration with FastAPI."""
    try:
        logger.info("Setting up dependency injection...")
        setup_dishka(container, app)
        logger.info("Dependency injection setup completed")
    except Exception as e:
        logger.critical(f"Failed to setup dependency injection: {e}", exc_info=True)
        raise
