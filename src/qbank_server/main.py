"""
Question Bank Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.
"""

from __future__ import annotations

import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .db import async_engine
from .core.errors import (
    InvalidFilterError,
    UpstreamUnavailableError,
    http_exception_handler,
    invalid_filter_handler,
    request_validation_handler,
    unhandled_exception_handler,
    upstream_unavailable_handler,
)

from .api import (
    admin_routes,
    api_key_routes,
    chat_routes,
    health_routes,
    internal_routes,
    question_routes,
    stats_routes,
)


logger = logging.getLogger("qbank.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests build their own instance and install `dependency_overrides` on it.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="qbank-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(InvalidFilterError, invalid_filter_handler)
    app.add_exception_handler(UpstreamUnavailableError, upstream_unavailable_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(question_routes.router)
    app.include_router(stats_routes.router)
    app.include_router(internal_routes.router)
    app.include_router(api_key_routes.router)
    app.include_router(chat_routes.router)
    app.include_router(admin_routes.router)

    # --------------------------------------------------------------
    # Startup / Shutdown
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Starting qbank-server")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        """
        Release pooled database connections.
        """
        await async_engine.dispose()
        logger.info("Shutting down qbank-server")

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
