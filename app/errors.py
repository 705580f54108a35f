"""
Application error taxonomy and HTTP mapping.

Services raise these exceptions; the handler registered by
``register_error_handlers`` turns them into a stable JSON body:

    {"ok": false, "error": "<kind>", "message": "<human readable>"}

No stack traces or internal identifiers are ever included in responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    kind = "internal_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def headers(self) -> dict[str, str] | None:
        return None


class InvalidInput(AppError):
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Unauthorized(AppError):
    kind = "unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired credentials"


class Forbidden(AppError):
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(AppError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Gone(AppError):
    kind = "gone"
    status_code = status.HTTP_410_GONE
    default_message = "Token no longer usable"


class RateLimited(AppError):
    kind = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"

    def __init__(self, message: str | None = None, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after

    def headers(self) -> dict[str, str] | None:
        if self.retry_after is None:
            return None
        return {"Retry-After": str(self.retry_after)}


class UpstreamError(AppError):
    kind = "upstream_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream service failure"


class ConfigurationError(RuntimeError):
    """Missing or invalid required configuration. The process must not serve requests."""


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.info(
        "Request failed",
        error_kind=exc.kind,
        status_code=exc.status_code,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.kind, "message": exc.message},
        headers=exc.headers(),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    logger.info("Request validation failed", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"ok": False, "error": InvalidInput.kind, "message": "Malformed request"},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"ok": False, "error": "internal_error", "message": "Internal Server Error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
