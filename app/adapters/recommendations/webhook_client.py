"""HTTP client for the recommendation webhook."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from app.adapters.recommendations.base import AbstractRecommendationClient
from app.core.errors import UpstreamAppError

logger = logging.getLogger(__name__)


class WebhookRecommendationClient(AbstractRecommendationClient):
    """Calls the webhook with a GET carrying latitude, longitude and radius.

    If ``http_client`` is provided it is reused for every call; otherwise a
    client is created and closed per call.
    """

    def __init__(
        self,
        webhook_url: str,
        user_agent: str,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.user_agent = user_agent
        self.timeout_seconds = timeout_seconds
        self._http_client = http_client

    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout_seconds)
        try:
            yield client
        finally:
            await client.aclose()

    async def fetch(self, *, latitude: float, longitude: float, radius: int) -> Any:
        params = {"latitude": latitude, "longitude": longitude, "radius": radius}

        try:
            async with self._client_context() as client:
                resp = await client.get(
                    self.webhook_url,
                    params=params,
                    headers={"User-Agent": self.user_agent},
                )
        except httpx.HTTPError as exc:
            logger.error(
                "upstream.transport_error",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise UpstreamAppError(
                code="upstream_unavailable",
                message="An error occurred while fetching recommendations",
            ) from exc

        if resp.is_error:
            logger.error("upstream.error", extra={"upstream_status": resp.status_code})
            raise UpstreamAppError(
                code="upstream_error",
                message="An error occurred while fetching recommendations",
            )

        try:
            return resp.json()
        except ValueError as exc:
            logger.error("upstream.invalid_payload", extra={"upstream_status": resp.status_code})
            raise UpstreamAppError(
                code="upstream_invalid_payload",
                message="An error occurred while fetching recommendations",
            ) from exc
