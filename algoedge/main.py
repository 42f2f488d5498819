"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (one per bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- Database engine lifecycle

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIASGIMiddleware

from algoedge.core.config import settings
from algoedge.infrastructure.database import dispose_engine, init_models
from algoedge.interfaces.health import router as health_router
from algoedge.interfaces.mt5.router import router as mt5_router
from algoedge.shared.errors.handlers import register_error_handlers
from algoedge.shared.logging import configure_logging
from algoedge.shared.security.headers import SecurityHeadersMiddleware
from algoedge.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: report configuration gaps, manage the engine."""
    if settings.uses_dev_jwt_secret:
        logger.warning("JWT_SECRET is not set; using the development fallback secret")
    if not settings.metaapi_token:
        logger.warning("METAAPI_TOKEN is not set; MT5 connect and refresh will fail")
    if settings.database_auto_create:
        await init_models()

    yield

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIASGIMiddleware)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api")
    app.include_router(mt5_router, prefix="/api")

    return app


app = create_app()
