"""Error types and JSON error responses for the Matchmaker API.

Error bodies keep the shape the browser client reads:

    {"error": "<human readable message>", "details": "<optional detail>"}

Route handlers raise one of the ``MatchmakerError`` subclasses below and the
handlers registered by :func:`add_exception_handlers` turn them into
responses with the matching status code.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class MatchmakerError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequestError(MatchmakerError):
    status_code = 400


class NotFoundError(MatchmakerError):
    status_code = 404


class ConfigurationError(MatchmakerError):
    """Required environment variables are missing."""

    status_code = 500


class DatabaseError(MatchmakerError):
    status_code = 500


class SearchFailedError(DatabaseError):
    """The hybrid search procedure returned an error."""


class EmbeddingError(MatchmakerError):
    status_code = 502


class LLMError(MatchmakerError):
    status_code = 502


class InternalServerError(MatchmakerError):
    """Unexpected failure inside a route, wrapped with a route-specific message."""

    status_code = 500


def error_response(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """
    Create an error response body.

    Args:
        message: Human-readable error message
        details: Optional extra information (usually the underlying exception text)

    Returns:
        Error body dictionary
    """
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body


def add_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app.

    - MatchmakerError → its own status code
    - RequestValidationError → 400 with the first validation message
    - HTTPException → its status code with the detail as message
    - Unhandled Exception → 500
    """

    @app.exception_handler(MatchmakerError)
    async def matchmaker_error_handler(request: Request, exc: MatchmakerError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "request_error",
            path=request.url.path,
            status_code=exc.status_code,
            error_type=type(exc).__name__,
            error=exc.message,
            details=exc.details,
        )
        return JSONResponse(status_code=exc.status_code, content=error_response(exc.message, exc.details))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        details = None
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            details = f"{location}: {first.get('msg')}" if location else first.get("msg")
        logger.warning("request_validation_failed", path=request.url.path, details=details)
        return JSONResponse(status_code=400, content=error_response("Invalid request", details))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error_type=type(exc).__name__,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=error_response("Unexpected server error", str(exc)),
        )
