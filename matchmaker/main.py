"""
Main FastAPI application

Uvicorn should point at `matchmaker.main:app` and drop its `server` header,
which it adds after the app has run:

    uvicorn matchmaker.main:app --no-server-header
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from matchmaker.api import chat, embeddings, health, profile
from matchmaker.core.config import settings
from matchmaker.core.database import dispose_engines
from matchmaker.core.errors import add_exception_handlers
from matchmaker.core.logging import configure_logging, get_logger
from matchmaker.core.middleware import CORRELATION_HEADER, RequestTracingMiddleware, SecurityHeadersMiddleware
from matchmaker.core.rate_limit import limiter
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "application_startup",
        app_name=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )
    yield
    await dispose_engines()
    logger.info("application_shutdown", app_name=settings.APP_NAME)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        description="Conversational hybrid search over singles profiles with LLM summaries.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    add_exception_handlers(app)

    # Middleware order matters: the last one added runs first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTracingMiddleware)

    allowed_origins = [origin.strip() for origin in settings.ALLOWED_ORIGINS.split(",") if origin.strip()]
    if settings.DEBUG:
        allowed_origins.append("*")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_HEADER],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(chat.router)
    app.include_router(profile.router)
    app.include_router(embeddings.router)

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn (`matchmaker-api` console script)."""
    uvicorn.run(
        "matchmaker.main:app",
        host="0.0.0.0",  # nosec B104 - intentional for Docker container
        port=8000,
        reload=settings.DEBUG,
        server_header=False,
    )


if __name__ == "__main__":
    run()
