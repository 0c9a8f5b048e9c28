"""
Resilience patterns: Circuit Breaker and Retry Logic

Provides resilience utilities for external service calls:
- Circuit breakers: Prevent cascading failures by failing fast when services are down
- Retry decorators: Automatic retry with exponential backoff for transient failures

Usage:
    @retry_openai_operation()
    async def call_openai():
        with openai_breaker.calling():
            return await client.chat.completions.create(...)

The breaker sits inside the retry so every attempt is counted. pybreaker's
``calling()`` context manager spans the ``await``; a failure raised in the
block is recorded and re-raised, and once the breaker trips (or while it is
open) ``CircuitBreakerError`` is raised instead.

Circuit Breaker States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service is failing, requests fail immediately
- HALF-OPEN: Testing if service recovered
"""

import logging

import httpx
import structlog
from openai import APIConnectionError, APITimeoutError, RateLimitError
from pybreaker import CircuitBreaker
from sqlalchemy.exc import OperationalError
from tenacity import after_log, before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = structlog.get_logger(__name__)


# =============================================================================
# Circuit Breakers for External Dependencies
# =============================================================================

# Database Circuit Breaker
db_breaker = CircuitBreaker(
    fail_max=5,
    reset_timeout=60,
    name="database_circuit_breaker",
)

# OpenAI API Circuit Breaker
# Higher fail threshold and longer reset for external API
openai_breaker = CircuitBreaker(
    fail_max=10,
    reset_timeout=120,
    name="openai_circuit_breaker",
)


def retry_database_operation():
    """
    Retry decorator for read-only database operations
    Retries up to 3 times with exponential backoff on connection-level errors
    """
    return retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )


def retry_openai_operation(max_attempts: int = 3):
    """
    Retry decorator for OpenAI API operations.

    Handles transient errors and rate limits with exponential backoff.
    Does NOT retry on authentication errors or invalid requests.

    Args:
        max_attempts: Maximum number of retry attempts (default: 3)
    """
    return retry(
        retry=retry_if_exception_type(
            (
                APIConnectionError,
                APITimeoutError,
                RateLimitError,
                httpx.ConnectError,
                httpx.ConnectTimeout,
                httpx.ReadTimeout,
            )
        ),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=2, min=1, max=30),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )


def get_circuit_breaker_status() -> dict:
    """
    Get status of all circuit breakers for health monitoring.

    Returns:
        Dict with breaker name -> status info
    """
    breakers = {
        "database": db_breaker,
        "openai": openai_breaker,
    }

    return {
        name: {
            "state": str(breaker.current_state),
            "fail_count": breaker.fail_counter,
            "fail_max": breaker.fail_max,
            "reset_timeout": breaker.reset_timeout,
        }
        for name, breaker in breakers.items()
    }
