"""Rate limiting dependency for FastAPI routes.

This module wires the admission gate adapter into the HTTP layer.

Design goals:
- The limiter is owned by the application (``app.state.rate_limiter``) and
  injected into requests, so tests get an isolated instance per app.
- Swap-friendly: storage backend can be replaced behind an abstract
  interface.
- The identity combines the forwarded client IP and a user-agent digest.

Stale entries are evicted by :func:`run_sweeper`, a background task started
from the application lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitExceededError
from app.core.logging import hash_for_log
from app.services.identity import derive_identity

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


@dataclass(frozen=True)
class AdmissionDecision:
    """Admitted request context handed to the route."""

    client_id: str
    result: RateLimitResult

    def response_headers(self, cfg: RateLimitSettings) -> dict[str, str]:
        headers: dict[str, str] = {}
        if cfg.include_headers:
            headers["X-RateLimit-Limit"] = str(self.result.limit)
            headers["X-RateLimit-Remaining"] = str(self.result.remaining)
        if cfg.expose_client_id:
            headers["X-Client-ID"] = self.client_id
        return headers


def build_rate_limiter(cfg: RateLimitSettings | None = None) -> AbstractRateLimiter:
    """Create the limiter described by settings."""

    cfg = cfg or settings.rate_limit
    return InMemoryFixedWindowRateLimiter(limit=cfg.max_requests, window_ms=cfg.window_ms)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application.

    A limiter is installed lazily when the app was built without one (e.g.
    a bare FastAPI app in tests).
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def limit_message(max_requests: int, window_ms: int) -> str:
    hours = window_ms / 3_600_000
    window = f"{hours:g}h" if hours >= 1 else f"{window_ms // 1000}s"
    return (
        f"BETA: limit of {max_requests} searches per {window} reached. "
        "Try again later."
    )


async def enforce_rate_limit(request: Request) -> AdmissionDecision:
    """FastAPI dependency enforcing the per-client search cap.

    When enabled, consumes 1 unit from the requester's budget. If the
    requester has exhausted the window, raises RateLimitExceededError (429).

    Args:
        request: FastAPI request.

    Returns:
        AdmissionDecision with the client id and the limiter result.

    Raises:
        RateLimitExceededError: When the window's budget is exhausted.
    """

    cfg = settings.rate_limit
    client_id = derive_identity(request.headers)

    if not cfg.enabled:
        return AdmissionDecision(
            client_id=client_id,
            result=RateLimitResult(
                allowed=True,
                limit=cfg.max_requests,
                remaining=cfg.max_requests,
                reset_at=None,
                retry_after_seconds=None,
            ),
        )

    limiter = get_rate_limiter(request)
    result = limiter.admit(client_id)
    client_hash = hash_for_log(client_id)

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_hash": client_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_ms": cfg.window_ms,
            },
        )
        return AdmissionDecision(client_id=client_id, result=result)

    retry_after = result.retry_after_seconds
    if retry_after is None:
        retry_after = DEFAULT_RETRY_AFTER_SECONDS

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_hash": client_hash,
            "limit": result.limit,
            "window_ms": cfg.window_ms,
            "retry_after_s": retry_after,
            "reset_at": result.reset_at,
        },
    )

    raise RateLimitExceededError(
        code="rate_limit_exceeded",
        message=limit_message(result.limit, cfg.window_ms),
        limit=result.limit,
        retry_after=retry_after,
        reset_at=result.reset_at,
        client_id=client_id if cfg.expose_client_id else None,
        include_headers=cfg.include_headers,
    )


async def run_sweeper(limiter: AbstractRateLimiter, interval_ms: int) -> None:
    """Periodically evict stale limiter entries until cancelled."""

    while True:
        await asyncio.sleep(interval_ms / 1000)
        evicted = limiter.sweep()
        if evicted:
            logger.info("rate_limit.swept", extra={"evicted": evicted})
