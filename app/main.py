# ==== CREDIT GATE MAIN APPLICATION MODULE ==== #

"""
Main FastAPI application for Credit Gate.

This module provides the FastAPI application with its middleware stack,
observability and error handling for the credit validation service.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.business.errors import CreditDataSourceError, InvalidAmountError
from app.settings import settings
from app.storage.db import init_database, close_database, get_session
from app.observability.tracing import init_tracing
from app.observability.metrics import init_metrics, metrics_router
from app.observability.logging import ContextualLogger, init_logging
from app.middleware.correlation import CorrelationMiddleware
from app.middleware.company_scope import CompanyScopeMiddleware
from app.routes import credit


logger = ContextualLogger(__name__)


# ==== APPLICATION LIFECYCLE MANAGEMENT ==== #


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown operations.

    Args:
        app (FastAPI): FastAPI application instance

    Yields:
        None: Control back to FastAPI during application runtime
    """
    # --► STARTUP SEQUENCE
    init_logging(settings.LOG_LEVEL, settings.LOG_TO_FILES, settings.LOG_DIR)
    init_tracing(settings)
    init_database()
    logger.info("Credit Gate started", environment=settings.APP_ENV)

    yield

    # --► SHUTDOWN SEQUENCE
    await close_database()


# ==== APPLICATION FACTORY ==== #


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title="Credit Gate",
        description="Credit and risk validation for order creation",
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if settings.APP_ENV == "dev" else None
    )

    # --► OBSERVABILITY INITIALIZATION
    init_metrics(app)

    # --► MIDDLEWARE STACK CONFIGURATION
    # ⚠️ CORS middleware must be added FIRST before other middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Correlation-Id"],
    )
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(CompanyScopeMiddleware)

    _register_health_endpoints(app)
    _register_routers(app)
    _register_exception_handlers(app)

    # --► OPENTELEMETRY INSTRUMENTATION
    FastAPIInstrumentor.instrument_app(app)

    return app


# ==== ENDPOINT REGISTRATION HELPERS ==== #


def _register_health_endpoints(app: FastAPI) -> None:
    """
    Register health check endpoints for liveness and readiness probes.

    Args:
        app (FastAPI): FastAPI application instance
    """
    @app.get("/healthz", tags=["health"])
    async def health_check() -> dict:
        """Liveness probe endpoint."""
        return {
            "status": "ok",
            "service": settings.SERVICE_NAME,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    @app.get("/readyz", tags=["health"])
    async def readiness_check() -> JSONResponse:
        """
        Readiness probe endpoint.

        Ready only when the database answers a trivial query.
        """
        try:
            async with get_session() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Readiness check failed", error=str(exc))
            return JSONResponse(
                status_code=503,
                content={"status": "unavailable", "service": settings.SERVICE_NAME}
            )

        return JSONResponse(content={
            "status": "ready",
            "service": settings.SERVICE_NAME,
            "environment": settings.APP_ENV
        })


def _register_routers(app: FastAPI) -> None:
    """
    Register application routers with their prefixes and tags.

    Args:
        app (FastAPI): FastAPI application instance
    """
    app.include_router(metrics_router, prefix="", tags=["monitoring"])
    app.include_router(credit.router, prefix="/api/credit", tags=["credit"])


# ==== EXCEPTION HANDLERS ==== #


def _error_response(request: Request, status_code: int, error: str, message: str, code: str) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "correlation_id": correlation_id,
            "code": code
        }
    )


def _register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers mapping engine errors to HTTP responses.

    Args:
        app (FastAPI): FastAPI application instance
    """
    @app.exception_handler(CreditDataSourceError)
    async def data_source_error_handler(request: Request, exc: CreditDataSourceError) -> JSONResponse:
        """Credit data could not be read; no decision was made."""
        return _error_response(
            request,
            503,
            "Credit data unavailable",
            "Credit data could not be read; retry the validation",
            exc.code
        )

    @app.exception_handler(InvalidAmountError)
    async def invalid_amount_handler(request: Request, exc: InvalidAmountError) -> JSONResponse:
        """Amount rejected by the decimal layer."""
        return _error_response(request, 422, "Invalid amount", str(exc), exc.code)

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc) -> JSONResponse:
        """Handle 404 Not Found errors with consistent response format."""
        return _error_response(
            request,
            404,
            "Not found",
            "The requested resource was not found",
            "NOT_FOUND"
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.exception("Unhandled error", path=request.url.path)
        return _error_response(
            request,
            500,
            "Internal server error",
            "An unexpected error occurred",
            "INTERNAL_ERROR"
        )


# ==== APPLICATION INSTANCE ==== #


# Create application instance for deployment
app = create_app()
