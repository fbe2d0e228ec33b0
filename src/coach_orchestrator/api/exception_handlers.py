"""
Exception handlers for the FastAPI application.

Every error leaves the service as {"error": {"code", "message", "details"?}}
with the status code carried by the exception.
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from ..exceptions import CoachOrchestratorError, ErrorCode


logger = logging.getLogger("coach_orchestrator.api")


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    details: Dict[str, Any] | None = None,
    headers: Dict[str, str] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    content: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def orchestrator_error_handler(
    request: Request,
    exc: CoachOrchestratorError,
) -> JSONResponse:
    """Handle all CoachOrchestratorError exceptions."""
    if exc.status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: {exc!r}")
    headers = {"Allow": "POST, OPTIONS"} if exc.code == ErrorCode.METHOD_NOT_ALLOWED else None
    return create_error_response(
        status_code=exc.status_code,
        code=exc.code.value,
        message=exc.message,
        details=exc.details if exc.details else None,
        headers=headers,
    )


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Handle rate limit exceeded exceptions."""
    return create_error_response(
        status_code=429,
        code=ErrorCode.RATE_LIMITED.value,
        message=f"Rate limit exceeded: {exc.detail}",
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    return create_error_response(
        status_code=500,
        code=ErrorCode.INTERNAL_ERROR.value,
        message="An unexpected error occurred",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(CoachOrchestratorError, orchestrator_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Catch-all; must be registered last
    app.add_exception_handler(Exception, generic_exception_handler)
