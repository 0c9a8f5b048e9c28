"""
Health, readiness and diagnostics endpoints
"""

import platform
import time
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from matchmaker.core.config import settings
from matchmaker.core.database import check_database_connection
from matchmaker.core.logging import get_logger
from matchmaker.core.resilience import get_circuit_breaker_status
from matchmaker.schemas.profile import DiagnosticsResponse, EnvironmentFlags, HealthResponse

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint
    Returns 200 if the service is running
    """
    logger.debug("health_check_requested")
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        timestamp=time.time(),
    )


@router.get("/ready", response_class=JSONResponse)
async def readiness_check():
    """
    Readiness check endpoint
    Returns 200 if the database is reachable, 503 otherwise
    """
    checks = {"database": await check_database_connection()}
    ready = all(checks.values())
    if not ready:
        logger.warning("readiness_check_failed", checks=checks)

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": checks,
            "circuit_breakers": get_circuit_breaker_status(),
            "timestamp": time.time(),
        },
    )


@router.get("/api/diagnostics", response_model=DiagnosticsResponse)
async def diagnostics():
    """Report which credentials are configured, without revealing them."""
    return DiagnosticsResponse(
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        environment=EnvironmentFlags(
            has_openai_key=bool(settings.OPENAI_API_KEY),
            has_database_url=bool(settings.DATABASE_URL),
            has_admin_database_url=bool(settings.ADMIN_DATABASE_URL),
        ),
        python_version=platform.python_version(),
    )
