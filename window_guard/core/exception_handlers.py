"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses -> their HTTP status (400, 429)
- Unexpected Exception -> generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from window_guard.core.errors import AppError, RateLimitAppError
from window_guard.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors with a consistent JSON body.

    - RateLimitAppError -> 429 Too Many Requests, with Retry-After
    - any other AppError -> 400 Bad Request

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = 400
    headers: dict[str, str] | None = None
    if isinstance(exc, RateLimitAppError):
        status_code = 429
        headers = dict(exc.headers or {})
        headers.setdefault("Retry-After", str(exc.retry_after_seconds))

    # Throttling is routine; the rate limit dependency already logged it.
    if status_code != 429:
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

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure for debugging while returning a generic message, so no
    stack trace or internal detail reaches the client.
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

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
