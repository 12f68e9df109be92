"""Endorsement distribution API service.

FastAPI application providing:
- CoSERV query resolution at /endorsement-distribution/v1/coserv/{query}
- Service discovery at /.well-known/veraison/endorsement-distribution
- Health check for container orchestration

This module provides the app factory pattern for creating configured
FastAPI instances suitable for testing and production deployment.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from endorsement_distribution import __version__
from endorsement_distribution.api.middleware import ErrorHandlerMiddleware, RequestIDMiddleware
from endorsement_distribution.api.routers import coserv_router, well_known_router
from endorsement_distribution.core.config import ResolverSettings
from endorsement_distribution.services.resolver import Resolver

if TYPE_CHECKING:
    from endorsement_distribution.core.config import Settings
    from endorsement_distribution.services.store import EndorsementStore

logger = logging.getLogger(__name__)

API_TITLE = "Endorsement Distribution API"
API_DESCRIPTION = """
Distributes reference values and trust anchors to remote attestation
verifiers as CoSERV results.

## Endpoints

- **/endorsement-distribution/v1/coserv/{query}** - CoSERV query resolution
- **/.well-known/veraison/endorsement-distribution** - Service discovery

## Documentation

- OpenAPI document: `/api/openapi.json`
- Swagger UI: `/api/docs`
"""

DEFAULT_TENANT_ID = "0"


def create_app(
    settings: Settings | None = None,
    store: EndorsementStore | None = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    When a store is passed, the resolver is built immediately and no
    database is touched. Otherwise the resolver is built during startup
    on top of a pooled SQL store, with settings loaded from the
    environment if none were given.

    Args:
        settings: Optional Settings instance.
        store: Optional endorsement store (in-memory store for tests).

    Returns:
        Configured FastAPI application ready to serve requests.

    Example:
        # Production: settings from EDS_* environment variables
        app = create_app()

        # For testing
        app = create_app(store=InMemoryEndorsementStore())
    """
    version = settings.app_version if settings else __version__

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=version,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.tenant_id = settings.tenant_id if settings else DEFAULT_TENANT_ID
    app.state.resolver = None
    if store is not None:
        resolver_settings = settings.resolver if settings else ResolverSettings()
        app.state.resolver = Resolver.from_settings(store, resolver_settings)

    _add_middleware(app)
    _include_routers(app)

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint for container orchestration.

        Returns:
            Status dictionary indicating the service is healthy.
        """
        return {"status": "healthy"}

    logger.info("Endorsement distribution API created (version=%s)", version)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the SQL-backed resolver on startup and release the pool on shutdown."""
    if app.state.resolver is not None:
        yield
        return

    from endorsement_distribution.core.settings import get_settings
    from endorsement_distribution.db import close_engine, init_engine
    from endorsement_distribution.services.store import SqlEndorsementStore

    settings = app.state.settings or get_settings()
    app.state.settings = settings
    app.state.tenant_id = settings.tenant_id

    store = SqlEndorsementStore(init_engine(settings.database))
    app.state.resolver = Resolver.from_settings(store, settings.resolver)
    logger.info(
        "Resolver ready: tenant=%s, key_scheme=%s, fetch_timeout=%.1fs",
        settings.tenant_id,
        settings.resolver.key_scheme,
        settings.resolver.fetch_timeout,
    )
    try:
        yield
    finally:
        app.state.resolver = None
        await close_engine()
        logger.info("Database engine closed")


def _add_middleware(app: FastAPI) -> None:
    """Add middleware to the application.

    Args:
        app: The FastAPI application instance.
    """
    # Error handler middleware - converts exceptions to problem documents
    app.add_middleware(ErrorHandlerMiddleware)

    # Request ID middleware - outermost, so problem documents see the ID
    app.add_middleware(RequestIDMiddleware)


def _include_routers(app: FastAPI) -> None:
    """Include API routers.

    Args:
        app: The FastAPI application instance.
    """
    app.include_router(coserv_router)
    app.include_router(well_known_router)
