"""Application-wide exception classes and handlers.

This module provides a consistent exception hierarchy for the application
and registers global exception handlers with FastAPI.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for application errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found error (404)."""

    def __init__(self, message: str = "Resource not found", resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details,
        )


class SessionResolutionError(AppError):
    """The session or its video duration could not be resolved (404).

    Validation fails closed on this error: no verdict is produced.
    """

    def __init__(
        self, message: str = "Session could not be resolved", session_id: str | None = None
    ):
        details = {"session_id": session_id} if session_id else {}
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="SESSION_NOT_RESOLVED",
            details=details,
        )


def _error_body(code: str, message: str, details: dict[str, Any] | None) -> dict[str, Any]:
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or None},
    }


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as the standard error envelope.

    Client errors are logged at warning level: a failed session resolution
    is expected traffic, not a server fault.
    """
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        "%s %s -> %s (%d): %s",
        request.method,
        request.url.path,
        exc.error_code,
        exc.status_code,
        exc.message,
        extra={"details": exc.details},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.error_code, exc.message, exc.details),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("INTERNAL_ERROR", "An unexpected error occurred", None),
    )


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Register exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
        debug: If True, unhandled exceptions propagate with stack traces.
    """
    app.add_exception_handler(AppError, app_exception_handler)  # type: ignore[arg-type]
    if not debug:
        app.add_exception_handler(Exception, unhandled_exception_handler)
