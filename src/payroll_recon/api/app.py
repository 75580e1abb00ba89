"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_recon import __version__
from payroll_recon.api.routes import health_router, payroll_runs_router
from payroll_recon.config import get_settings
from payroll_recon.database import dispose_db, init_db
from payroll_recon.services import (
    CalculationError,
    ExceptionNotFoundError,
    InvalidTransitionError,
    PayrollRunError,
    RunLockedError,
    RunNotFoundError,
    RunValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[PayrollRunError], tuple[int, str]] = {
    RunNotFoundError: (status.HTTP_404_NOT_FOUND, "RUN_NOT_FOUND"),
    ExceptionNotFoundError: (status.HTTP_404_NOT_FOUND, "EXCEPTION_NOT_FOUND"),
    RunValidationError: (422, "VALIDATION_ERROR"),
    InvalidTransitionError: (status.HTTP_409_CONFLICT, "INVALID_TRANSITION"),
    RunLockedError: (status.HTTP_409_CONFLICT, "RUN_LOCKED"),
    CalculationError: (status.HTTP_500_INTERNAL_SERVER_ERROR, "CALCULATION_FAILED"),
}


def _error_context(exc: PayrollRunError) -> dict | None:
    if isinstance(exc, RunValidationError):
        return {"errors": exc.errors}
    if isinstance(exc, InvalidTransitionError):
        return {"from_status": exc.from_status, "to_status": exc.to_status}
    if isinstance(exc, CalculationError):
        return {"payroll_run_id": str(exc.payroll_run_id), "stage": exc.stage}
    return None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Payroll Reconciliation API",
        description="Payroll reconciliation and calculation engine",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayrollRunError)
    async def payroll_run_error_handler(request: Request, exc: PayrollRunError) -> JSONResponse:
        """Map lifecycle errors to HTTP status codes."""
        status_code, code = status.HTTP_400_BAD_REQUEST, "PAYROLL_RUN_ERROR"
        for error_type, mapping in ERROR_STATUS.items():
            if isinstance(exc, error_type):
                status_code, code = mapping
                break
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "code": code, "context": _error_context(exc)},
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
    app.include_router(payroll_runs_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
