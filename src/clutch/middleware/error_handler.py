"""Global error handler: consistent JSON error responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clutch.predictions.service import (
    DuplicatePredictionError,
    PredictionLockedError,
    PredictionNotFoundError,
    PredictionStateError,
    PredictionValidationError,
)

logger = structlog.get_logger()

# Service-layer exceptions and the status code each maps to. Checked in
# order, so subclasses must come before ValueError/LookupError.
DOMAIN_ERRORS: tuple[tuple[type[Exception], int], ...] = (
    (PredictionValidationError, 400),
    (PredictionLockedError, 409),
    (DuplicatePredictionError, 409),
    (PredictionStateError, 409),
    (PredictionNotFoundError, 404),
    (PermissionError, 403),
    (LookupError, 404),
    (ValueError, 400),
)


def status_for(exc: Exception) -> int:
    for exc_type, status in DOMAIN_ERRORS:
        if isinstance(exc, exc_type):
            return status
    return 500


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle validation errors with consistent JSON format."""
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Rejections raised by the services: one message, no partial effect."""
        status = status_for(exc)
        logger.info("request_rejected", path=request.url.path, status=status, reason=str(exc))
        return JSONResponse(status_code=status, content={"detail": str(exc)})

    for exc_type in (PermissionError, LookupError, ValueError):
        app.add_exception_handler(exc_type, domain_exception_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
