import logging
from datetime import datetime, timezone
from http import HTTPStatus

from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pybreaker import CircuitBreakerError
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(request: Request, status_code: int, message: str, validation_errors: dict | None = None) -> dict:
    body = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status_code,
        "error": HTTPStatus(status_code).phrase,
        "message": message,
        "path": str(request.url.path),
    }
    if validation_errors:
        body["validation_errors"] = validation_errors
    return body


def _field_name(location) -> str:
    # ("body", "email") -> "email"; ("query", "lat") -> "lat"
    parts = [str(part) for part in location if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def register_exception_handlers(app):
    """
    Register global exception handlers for standardized error responses.
    """

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Every invalid field is reported, not only the first one
        validation_errors = {}
        for error in exc.errors():
            validation_errors.setdefault(_field_name(error.get("loc", ())), error.get("msg", "Invalid value"))
        return JSONResponse(
            status_code=400,
            content=error_body(request, 400, "Request validation failed", validation_errors),
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded on %s", request.url.path)
        return JSONResponse(
            status_code=429,
            content=error_body(request, 429, "Rate limit exceeded. Please try again later."),
        )

    @app.exception_handler(CircuitBreakerError)
    async def circuit_open_handler(request: Request, exc: CircuitBreakerError):
        return JSONResponse(
            status_code=503,
            content=error_body(request, 503, "Storage temporarily unavailable. Please try again later."),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Fallback for unexpected errors; details stay in the log
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body(request, 500, "An unexpected error occurred. Please try again later."),
        )
