"""FastAPI application entry point with global error handling."""
from __future__ import annotations

import os
import sys

# Add src/ to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.exceptions import InternalError, InvalidArgumentError, TimberMarketError, UnauthenticatedError
from core.logging_config import get_logger, setup_logging
from api.routes import health, inquiries, inventory, projects, properties, quotes

LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Sets up logging, validates the database, and logs startup/shutdown.
    The app still starts when the database is not ready so health checks
    can report it.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.log_format == "json")

    LOGGER.info(
        "API application starting",
        extra={"extra_data": {
            "environment": settings.environment,
            "database_url": settings.database_url,
        }}
    )

    from core.db import init_db, validate_database

    db_status = validate_database()
    if db_status["status"] == "error":
        LOGGER.error(
            "Database validation failed - app will start without database",
            extra={"extra_data": {"errors": db_status["errors"]}}
        )
    elif db_status["status"] == "missing_tables":
        LOGGER.warning(
            "Missing database tables detected - attempting to create",
            extra={"extra_data": {"missing": db_status["tables_missing"]}}
        )
        init_result = init_db()
        if init_result["status"] == "error":
            LOGGER.error(
                "Failed to create missing tables",
                extra={"extra_data": {"error": init_result.get("error")}}
            )
    else:
        LOGGER.info("Database validation passed")

    yield
    LOGGER.info("API application shutting down")


def _error_response(exc: TimberMarketError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict()},
        headers=headers,
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance with:
        - CORS middleware
        - Global exception handlers
        - All API routes under /api
    """
    settings = get_settings()
    application = FastAPI(
        title="Timber Market",
        description="Timber sale marketplace: inquiries, quotes, cruises and sales",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Global Exception Handlers
    # -------------------------------------------------------------------------

    @application.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
        """Log internal failures with detail; report them generically."""
        LOGGER.error(
            f"Internal error: {exc.message}",
            exc_info=exc,
            extra={"extra_data": {"path": request.url.path}},
        )
        return _error_response(InternalError())

    @application.exception_handler(TimberMarketError)
    async def app_error_handler(request: Request, exc: TimberMarketError) -> JSONResponse:
        """Handle caller errors: not found, permission, precondition and friends."""
        LOGGER.warning(
            f"{exc.kind}: {exc.message}",
            extra={"extra_data": {"path": request.url.path}},
        )
        return _error_response(exc)

    @application.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed request bodies are invalid arguments."""
        LOGGER.warning(f"Validation error: {exc}", extra={"extra_data": {"path": request.url.path}})
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return _error_response(InvalidArgumentError(problems or "Invalid request."))

    @application.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        LOGGER.error(
            f"Unhandled error: {exc}",
            exc_info=exc,
            extra={"extra_data": {"path": request.url.path}},
        )
        return _error_response(InternalError())

    # -------------------------------------------------------------------------
    # Include Routers
    # -------------------------------------------------------------------------
    application.include_router(health.router, prefix="/api/health", tags=["Health"])

    @application.get("/health")
    async def root_health_check():
        """Lightweight health check - always returns OK."""
        return {"status": "ok", "service": "timber-market"}

    application.include_router(quotes.router, prefix="/api/quotes", tags=["Quotes"])
    application.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
    application.include_router(inquiries.router, prefix="/api/inquiries", tags=["Inquiries"])
    application.include_router(properties.router, prefix="/api/properties", tags=["Properties"])
    application.include_router(inventory.router, prefix="/api/inventory", tags=["Inventory"])

    return application


# Create the application instance
app = create_app()

LOGGER.info("API application initialized")
