"""Global exception handlers for consistent error responses.

Design:
- PolicyConfigurationError → 500 (a route references a missing or invalid
  policy; a deployment fault, never a client one)
- Any other AppError → 400 (client fault)
- Unexpected Exception → generic 500 (safety net)
- All bodies share ``{"error": {"code", "message", "request_id", "details?"}}``

Rate limit rejections are not routed here: the dependency raises
``HTTPException(429)`` with its headers and FastAPI renders it directly.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.errors import AppError, PolicyConfigurationError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    error: dict = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error["details"] = details
    return {"error": error}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError with a status code derived from its type.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error envelope.
    """
    status_code = 500 if isinstance(exc, PolicyConfigurationError) else 400
    log = logger.error if status_code >= 500 else logger.warning

    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, dict(exc.details) if exc.details else None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for unexpected errors; never leaks exception text to clients."""
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
        content=_error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register the AppError handler and the generic fallback on ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
