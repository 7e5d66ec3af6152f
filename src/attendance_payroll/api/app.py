"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance_payroll.api.routes import health_router, periods_router, records_router
from attendance_payroll.calculators.deduction_policy import DeductionPolicy
from attendance_payroll.config import configure_logging, get_settings
from attendance_payroll.database import get_session_factory
from attendance_payroll.exceptions import (
    NotFoundError,
    PayrollError,
    PayrollValidationError,
)
from attendance_payroll.services.payroll_service import PayrollService

logger = logging.getLogger(__name__)


def error_status(exc: PayrollError) -> int:
    """HTTP status for a payroll error."""
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, PayrollValidationError):
        return 422
    return status.HTTP_409_CONFLICT


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("Attendance payroll API starting (engine %s)", get_settings().engine_version)
    yield
    logger.info("Attendance payroll API stopped")


def create_app(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    deduction_policy: DeductionPolicy | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="Attendance Payroll API",
        description="Payroll computation and period lifecycle engine",
        version=settings.engine_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.session_factory = session_factory or get_session_factory()
    app.state.payroll_service = PayrollService(app.state.session_factory, deduction_policy)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollError)
    async def payroll_exception_handler(request: Request, exc: PayrollError) -> JSONResponse:
        """Map payroll errors to a structured body."""
        content = {"detail": exc.message, "code": exc.code, "retryable": exc.retryable}
        if isinstance(exc, PayrollValidationError):
            content["errors"] = exc.errors
        return JSONResponse(status_code=error_status(exc), content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
                "retryable": False,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(periods_router, prefix="/api/v1")
    app.include_router(records_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
