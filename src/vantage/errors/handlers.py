"""FastAPI exception handlers producing the ErrorResponse envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vantage.errors.exceptions import AuthorizationError, InternalError, ValidationError, VantageError
from vantage.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _render(request: Request, exc: VantageError, message: str | None = None, details=None) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "unknown")
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=exc.code,
            message=message if message is not None else exc.message,
            details=details if details is not None else exc.details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(VantageError)
    async def vantage_error_handler(request: Request, exc: VantageError):
        if isinstance(exc, AuthorizationError):
            logger.warning(
                "portfolio_access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "trace_id": getattr(request.state, "trace_id", "unknown"),
                    "code": exc.code,
                    "reason": exc.message,
                },
            )
        if isinstance(exc, InternalError):
            logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
            return _render(request, exc, message="An internal error occurred", details=None)
        return _render(request, exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        violations = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return _render(request, ValidationError("Request payload failed validation"), details=violations)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _render(request, InternalError())
