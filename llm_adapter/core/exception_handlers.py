"""Global exception handlers for consistent error responses.

Every error leaving the API has the shape
``{"error": {"code", "message", "request_id", "details"?}}``.

Status mapping:
- ValidationAppError -> 400
- EmptyResponseError / ParseFailureError -> 502 (upstream produced unusable output)
- other LLMAppError -> 500
- unexpected Exception -> generic 500, no internals leaked
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from llm_adapter.core.errors import (
    AppError,
    EmptyResponseError,
    LLMAppError,
    ParseFailureError,
    ValidationAppError,
)
from llm_adapter.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, (EmptyResponseError, ParseFailureError)):
        return 502
    if isinstance(exc, LLMAppError):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error as JSON with the mapped status code.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the error body.
    """
    status_code = status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
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
    """Fallback for unexpected errors; logs the type, returns a generic body."""
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
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
