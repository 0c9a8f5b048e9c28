"""
Custom middleware for security headers and request tracing
"""

import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses and drop server disclosure headers
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        for header in ("server", "x-powered-by"):
            if header in response.headers:
                del response.headers[header]

        return response


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Add correlation IDs to requests and log request lifecycle events
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        start_time = time.time()
        logger.info(
            "request_started",
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration_seconds=time.time() - start_time,
                error=str(exc),
                exc_info=True,
            )
            raise

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - start_time,
        )
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def get_correlation_id(request: Request) -> str:
    """Return the correlation ID bound to the current request."""
    return getattr(request.state, "correlation_id", "unknown")
