"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hrms_engine import __version__
from hrms_engine.api.routes import attendance_router, health_router, leave_router, payroll_router
from hrms_engine.config import Settings, get_settings
from hrms_engine.database import Database
from hrms_engine.errors import (
    AuthorizationError,
    ConflictError,
    HRMSError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from hrms_engine.services.authorization import CapabilityProvider, StaticCapabilityProvider

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS: tuple[tuple[type[HRMSError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: HRMSError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    owns_database = app.state.database is None
    if owns_database:
        app.state.database = Database.from_settings(app.state.settings)
        logger.info("Connected storage (%s)", app.state.database.dialect_name)
    yield
    # Shutdown
    if owns_database:
        await app.state.database.dispose()
        app.state.database = None


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    capabilities: CapabilityProvider | None = None,
    today: Callable[[], date] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` and ``capabilities`` are injected by tests and embedding
    hosts; when omitted the lifespan opens storage from settings and every
    actor holds no capabilities.
    """
    app = FastAPI(
        title="HRMS Engine API",
        description="Leave approval, attendance ledger and payroll summary",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    app.state.database = database
    app.state.capabilities = capabilities or StaticCapabilityProvider()
    app.state.today = today or date.today

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(HRMSError)
    async def hrms_exception_handler(request: Request, exc: HRMSError) -> JSONResponse:
        """Map engine errors onto HTTP statuses."""
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(leave_router, prefix="/api/v1")
    app.include_router(attendance_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app
