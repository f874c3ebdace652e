# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the Parent Manager API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.middleware.auth import AuthMiddleware
from src.api.routes import health
from src.api.v1 import router as v1_router
from src.core.config import get_settings
from src.infrastructure.database.connection import close_database, init_database
from src.infrastructure.database.migrations.runner import run_migrations
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Configures logging, opens the database pool and, when enabled, applies
    pending migrations. The pool is closed on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    setup_logging(settings)
    logger.info(
        "Starting Parent Manager API: environment=%s, debug=%s",
        settings.environment,
        settings.debug,
    )

    # =========================================================================
    # Startup
    # =========================================================================

    if settings.database.auto_migrate:
        applied = await run_migrations(settings.database.url)
        logger.info("Migrations applied: %s", applied or "none")

    await init_database(settings)
    logger.info("Database connection initialized")

    yield

    # =========================================================================
    # Shutdown
    # =========================================================================

    try:
        await close_database()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning("Error closing database connection: %s", str(e))

    logger.info("Shutting down Parent Manager API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This factory function creates a new FastAPI instance with all
    middleware, routes, and configurations applied.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Parent Manager API",
        description="Parent accounts and parent-child relationships",
        version="1.0.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        # Disable automatic redirects from /path to /path/
        # This prevents 307 redirects that lose Authorization headers
        redirect_slashes=False,
    )

    # =========================================================================
    # Middleware (order matters - last added is first executed)
    # =========================================================================

    # Auth middleware - validates JWT tokens
    app.add_middleware(AuthMiddleware)

    # CORS middleware (added last to execute first)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.origins_list,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
    )

    # =========================================================================
    # Routes
    # =========================================================================
    app.include_router(health.router, tags=["Health"])
    app.include_router(v1_router)

    return app
