"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_settlement import __version__
from payroll_settlement.api.routes import (
    earnings_router,
    health_router,
    invoices_router,
    pay_periods_router,
    wallet_router,
)
from payroll_settlement.config import Settings, get_settings
from payroll_settlement.database import Database
from payroll_settlement.errors import (
    InvalidStateTransition,
    NotFound,
    PeriodNotOpen,
    StorageConflict,
    StorageUnavailable,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    database: Database = app.state.database
    database.open()
    logger.info("Database opened")
    yield
    await database.close()
    logger.info("Database closed")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Payroll Settlement API",
        description="Pay periods, invoices and wallet settlement",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url, echo=settings.debug)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PeriodNotOpen)
    async def period_not_open_handler(request: Request, exc: PeriodNotOpen) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "code": "PERIOD_NOT_OPEN",
                "context": {"pay_period_id": str(exc.pay_period_id), "state": exc.from_state},
            },
        )

    @app.exception_handler(InvalidStateTransition)
    async def invalid_transition_handler(
        request: Request, exc: InvalidStateTransition
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "code": "INVALID_STATE_TRANSITION",
                "context": {
                    "entity": exc.entity,
                    "from_state": exc.from_state,
                    "to_state": exc.to_state,
                },
            },
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc), "code": "NOT_FOUND"},
        )

    @app.exception_handler(StorageConflict)
    async def storage_conflict_handler(request: Request, exc: StorageConflict) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "STORAGE_CONFLICT"},
        )

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(
        request: Request, exc: StorageUnavailable
    ) -> JSONResponse:
        logger.warning("Storage unavailable on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc), "code": "STORAGE_UNAVAILABLE"},
            headers={"Retry-After": "1"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(pay_periods_router, prefix="/api/v1")
    app.include_router(invoices_router, prefix="/api/v1")
    app.include_router(wallet_router, prefix="/api/v1")
    app.include_router(earnings_router, prefix="/api/v1")

    return app
