"""Global exception handlers for consistent error responses.

Design:
- RateLimitExceededError / QueueFullError → 429 with Retry-After when known
- InvalidConfigurationError / InvalidJobError → 400
- Any other AppError → 500
- Unexpected Exception → generic 500 (safety net, no details leaked)
- All responses include the request id for tracing
"""

import logging
import math
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from windowlimit.core.errors import (
    AppError,
    InvalidConfigurationError,
    InvalidJobError,
    QueueFullError,
    RateLimitExceededError,
)
from windowlimit.core.context import get_correlation_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, (RateLimitExceededError, QueueFullError)):
        return 429
    if isinstance(exc, (InvalidConfigurationError, InvalidJobError)):
        return 400
    return 500


def _json_safe(details: dict[str, Any]) -> dict[str, Any]:
    # JSON has no representation for inf/nan.
    return {
        key: None if isinstance(value, float) and not math.isfinite(value) else value
        for key, value in details.items()
    }


def _rate_limit_headers(exc: RateLimitExceededError) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(exc.capacity),
        "X-RateLimit-Remaining": "0",
    }
    if math.isfinite(exc.retry_after):
        headers["Retry-After"] = str(max(0, math.ceil(exc.retry_after)))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle library errors with a consistent JSON envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_correlation_id(),
    }
    if exc.details:
        error_content["details"] = _json_safe(dict(exc.details))

    headers = _rate_limit_headers(exc) if isinstance(exc, RateLimitExceededError) else None

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
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_correlation_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
