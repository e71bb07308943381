"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobcost_engine.api.routes import (
    health_router,
    reports_router,
    sub_scopes_router,
    timesheets_router,
    union_classes_router,
)
from jobcost_engine.config import Settings, configure_logging, get_settings
from jobcost_engine.database import Database
from jobcost_engine.exceptions import (
    InvalidStateError,
    JobCostError,
    NotFoundError,
    RateNotConfiguredError,
    TransactionConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# First match wins
ERROR_STATUS: list[tuple[type[JobCostError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidStateError, status.HTTP_409_CONFLICT),
    (TransactionConflictError, status.HTTP_409_CONFLICT),
    (RateNotConfiguredError, status.HTTP_409_CONFLICT),
]


def status_for(exc: JobCostError) -> int:
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    owns_database = app.state.database is None
    if owns_database:
        app.state.database = Database.from_settings(app.state.settings)
    yield
    # Shutdown
    if owns_database:
        await app.state.database.dispose()
        app.state.database = None


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``database`` may be injected (tests); otherwise one is built from
    settings at startup.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Job Cost Engine API",
        description="Construction job costing: labor, completion and profitability",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(JobCostError)
    async def job_cost_exception_handler(request: Request, exc: JobCostError) -> JSONResponse:
        """Translate domain errors into typed responses."""
        status_code = status_for(exc)
        if isinstance(exc, TransactionConflictError):
            logger.warning("Conflict on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
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
    app.include_router(timesheets_router, prefix="/api/v1")
    app.include_router(union_classes_router, prefix="/api/v1")
    app.include_router(sub_scopes_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")

    return app
