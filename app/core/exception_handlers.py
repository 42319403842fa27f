"""Global exception handlers for consistent error responses.

Design:
- ValidationAppError → 400 with its code/message
- AuthenticationAppError → 403 with its code/message
- CredentialError (key configuration, malformed or tampered sealed
  secrets) → opaque 500; the specific cause only reaches the logs
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for log correlation
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AppError,
    AuthenticationAppError,
    AuthenticationError,
    ConfigurationError,
    CredentialError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_CODE = "internal_server_error"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def _internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": INTERNAL_ERROR_CODE,
                "message": INTERNAL_ERROR_MESSAGE,
                "request_id": get_request_id(),
            }
        },
    )


async def credential_error_handler(request: Request, exc: CredentialError) -> JSONResponse:
    """Log the credential failure by category and answer with an opaque 500.

    Tag verification failures are security-relevant and logged at error
    level under their own event name; configuration problems are logged as
    operator errors; malformed values as data errors.
    """
    if isinstance(exc, AuthenticationError):
        event, level = "credential_error.tamper_detected", logging.ERROR
    elif isinstance(exc, ConfigurationError):
        event, level = "credential_error.misconfigured", logging.ERROR
    else:
        event, level = "credential_error.malformed", logging.WARNING

    logger.log(
        level,
        event,
        extra={
            "error_code": exc.code,
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return _internal_error_response()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle client-facing application errors with a consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with ``{"error": {"code", "message", "request_id", "details"?}}``.
    """
    status_code = 403 if isinstance(exc, AuthenticationAppError) else 400

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the error type for debugging while returning a generic message;
    no stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return _internal_error_response()


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Starlette resolves handlers by walking the exception's MRO, so the
    CredentialError handler takes precedence over the AppError one.
    """
    app.exception_handler(CredentialError)(credential_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
