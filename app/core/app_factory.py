from __future__ import annotations

"""Application factory for the FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated instances with their own limiter and upstream client.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.recommendations.base import AbstractRecommendationClient
from app.adapters.recommendations.factory import create_recommendation_client
from app.api.routes import health_router, restaurants_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_rate_limiter, run_sweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the shared HTTP client and the limiter sweep task."""

    http_client: httpx.AsyncClient | None = None
    if getattr(app.state, "recommendation_client", None) is None:
        http_client = httpx.AsyncClient(timeout=settings.upstream.timeout_seconds)
        app.state.recommendation_client = create_recommendation_client(http_client=http_client)

    sweeper = asyncio.create_task(
        run_sweeper(app.state.rate_limiter, settings.rate_limit.effective_sweep_interval_ms)
    )
    logger.info(
        "app.started",
        extra={
            "rate_limit_enabled": settings.rate_limit.enabled,
            "max_requests": settings.rate_limit.max_requests,
            "window_ms": settings.rate_limit.window_ms,
        },
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        if http_client is not None:
            await http_client.aclose()
            app.state.recommendation_client = None


def create_app(
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    recommendation_client: AbstractRecommendationClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Admission gate to use; built from settings if omitted.
        recommendation_client: Upstream client; built at startup if omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Restaurant Discovery API",
        description=(
            "Proxies restaurant recommendation searches to an upstream webhook. "
            "BETA: each client is limited to a small number of searches per day."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings.rate_limit)
    app.state.recommendation_client = recommendation_client

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(restaurants_router, prefix="/api")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
