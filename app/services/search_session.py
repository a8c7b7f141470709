"""Search flow of the discovery page, as a reusable client.

Before each search the client-side gate is consulted; only admitted
searches reach the backend, which applies its own (server-side) gate. A
429 from the backend is turned into the same "limited" outcome as a local
denial, with a countdown derived from ``Retry-After``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.core.config import ClientLimitSettings, settings
from app.schemas.rate_limit import RateLimitConfig
from app.services.client_gate import ClientAdmissionGate, ClientLimiterState
from app.services.environment import EnvironmentReader
from app.utils.countdown import format_countdown

logger = logging.getLogger(__name__)

SEARCH_PATH = "/api/restaurants"


def client_limit_config(cfg: ClientLimitSettings | None = None) -> RateLimitConfig:
    cfg = cfg or settings.client_limit
    return RateLimitConfig(
        max_requests=cfg.max_requests,
        window_ms=cfg.window_ms,
        storage_key=cfg.storage_key,
    )


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one search attempt.

    Attributes:
        limited: True when either gate refused the search.
        payload: Backend payload for admitted searches.
        message: User-facing message for limited searches.
        retry_after_ms: Time until the limit resets.
        countdown: ``retry_after_ms`` formatted for display.
        remaining: Searches left, as reported by the backend or the local gate.
    """

    limited: bool
    payload: Any = None
    message: str | None = None
    retry_after_ms: int = 0
    countdown: str | None = None
    remaining: int | None = None


class SearchSession:
    """One browsing session performing rate-limited searches."""

    def __init__(
        self,
        gate: ClientAdmissionGate,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "",
    ) -> None:
        self.gate = gate
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    @classmethod
    def for_environment(
        cls,
        env: EnvironmentReader,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "",
    ) -> "SearchSession":
        return cls(ClientAdmissionGate(client_limit_config(), env), http_client, base_url=base_url)

    def start(self) -> ClientLimiterState:
        """Restore limiter state when the page loads."""
        return self.gate.initialize()

    def _local_limit_message(self) -> str:
        return (
            f"BETA: you have used your {self.gate.config.max_requests} searches "
            "for today."
        )

    async def search(self, latitude: float, longitude: float, radius: int) -> SearchOutcome:
        """Run one search.

        Raises:
            httpx.HTTPStatusError: The backend failed with a non-429 error.
            httpx.HTTPError: The backend could not be reached.
        """
        if self.gate.check():
            remaining_ms = self.gate.remaining_time()
            return SearchOutcome(
                limited=True,
                message=self._local_limit_message(),
                retry_after_ms=remaining_ms,
                countdown=format_countdown(remaining_ms),
                remaining=0,
            )

        resp = await self._http.get(
            f"{self._base_url}{SEARCH_PATH}",
            params={"latitude": latitude, "longitude": longitude, "radius": radius},
        )

        if resp.status_code == 429:
            body = resp.json()
            retry_after = resp.headers.get("Retry-After") or body.get("retryAfter") or 0
            retry_after_ms = int(retry_after) * 1000
            logger.info("search.server_limited", extra={"retry_after_s": int(retry_after)})
            return SearchOutcome(
                limited=True,
                message=body.get("message"),
                retry_after_ms=retry_after_ms,
                countdown=format_countdown(retry_after_ms),
                remaining=0,
            )

        resp.raise_for_status()
        remaining_header = resp.headers.get("X-RateLimit-Remaining")
        remaining = int(remaining_header) if remaining_header else self.gate.remaining_requests
        return SearchOutcome(limited=False, payload=resp.json(), remaining=remaining)
