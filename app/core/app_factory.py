"""Application factory for the FastAPI app.

Centralizes app construction (middleware, handlers, routers, rate limiter) so
tests can build isolated instances with their own limiter state.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.api.routes import health_router, policy_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import create_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    limiter: AbstractRateLimiter | None = getattr(app.state, "rate_limiter", None)
    if limiter is not None:
        limiter.close()
        logger.info("rate_limit.stopped")


def _configure_cors(app: FastAPI) -> None:
    origins = settings.app.cors_origin_list() or ["*"]
    allow_all = "*" in origins
    if allow_all:
        logger.warning(
            "cors.allow_all_origins",
            extra={"hint": "Restrict APP_CORS_ORIGINS in production"},
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
            settings.log.request_id_header,
        ],
    )


def create_app(rate_limiter: AbstractRateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Default limiter for gated routes. Built from settings
            when omitted and rate limiting is enabled.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="QRart API",
        description="Backend for sharing artwork through encoded markers.",
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    if rate_limiter is None and settings.rate_limit.enabled:
        rate_limiter = create_rate_limiter()
    app.state.rate_limiter = rate_limiter
    if rate_limiter is not None:
        logger.info(
            "rate_limit.started",
            extra={"limit": rate_limiter.limit},
        )

    # Middleware
    app.middleware("http")(request_id_middleware)
    _configure_cors(app)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(policy_router)

    return app
