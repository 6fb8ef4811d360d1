from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CollectorRegistry

from api_gateway_service.app.middleware import CorrelationIDMiddleware
from api_gateway_service.app.startup_setup import (
    create_di_container,
    setup_dependency_injection,
    validate_startup_configuration,
)
from api_gateway_service.config import Settings
from api_gateway_service.config import settings as default_settings
from api_gateway_service.error_handling.fastapi import (
    ErrorBoundaryMiddleware,
    register_error_handlers,
)
from api_gateway_service.logging_utils import configure_service_logging, create_service_logger
from api_gateway_service.routers import docs_routes, health_routes, proxy_routes

logger = create_service_logger("api_gateway_service.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    container = getattr(app.state, "dishka_container", None)
    if container is not None:
        logger.info("Closing DI container")
        await container.close()


def create_app(
    settings: Settings | None = None, registry: CollectorRegistry | None = None
) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Configuration to use; defaults to the environment-loaded settings.
        registry: Prometheus registry for the gateway metrics. Tests pass a fresh
            one so that building several apps does not register metrics twice.

    Raises:
        GatewayError: CONFIGURATION_ERROR when no token secret is configured.
    """
    if settings is None:
        settings = default_settings

    configure_service_logging(
        settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT.value,
        log_level=settings.LOG_LEVEL,
    )
    validate_startup_configuration(settings)

    # The merged backend document replaces FastAPI's own schema and docs pages
    app = FastAPI(
        title=settings.SERVICE_TITLE,
        version=settings.SERVICE_VERSION,
        description="Single entry point for the user, worksheet, payment and notification APIs",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Added innermost first: CORS wraps correlation, which wraps the error boundary
    app.add_middleware(ErrorBoundaryMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    app.include_router(health_routes.router)
    app.include_router(docs_routes.router)
    # Catch-all, must stay last
    app.include_router(proxy_routes.router)

    container = create_di_container(settings, registry)
    setup_dependency_injection(app, container)

    logger.info(
        f"{settings.SERVICE_NAME} configured for {len(settings.backend_descriptors())} backends",
        environment=settings.ENVIRONMENT.value,
    )
    return app


def main() -> None:
    uvicorn.run(
        "api_gateway_service.app.main:create_app",
        factory=True,
        host=default_settings.HTTP_HOST,
        port=default_settings.HTTP_PORT,
        log_config=None,
        server_header=False,
        date_header=False,
    )


if __name__ == "__main__":
    main()
