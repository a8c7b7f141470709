"""End-to-end tests of the search flow: client gate + backend gate."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
import respx

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.recommendations.base import AbstractRecommendationClient
from app.core.app_factory import create_app
from app.core.config import settings
from app.schemas.rate_limit import RateLimitConfig
from app.services.client_gate import ClientAdmissionGate
from app.services.search_session import SearchSession, client_limit_config

DAY_MS = 86_400_000
PAYLOAD = {"output": "1️⃣ *Chez Test*"}


class StaticRecommendations(AbstractRecommendationClient):
    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, *, latitude: float, longitude: float, radius: int) -> Any:
        self.calls += 1
        return PAYLOAD


def _run_searches(session: SearchSession, n: int) -> list:
    async def _go() -> list:
        return [await session.search(48.85, 2.35, 300) for _ in range(n)]

    return asyncio.run(_go())


def _session(env, clock, *, client_max: int, server_max: int, upstream) -> SearchSession:
    server_limiter = InMemoryFixedWindowRateLimiter(limit=server_max, window_ms=DAY_MS, clock=clock)
    app = create_app(rate_limiter=server_limiter, recommendation_client=upstream)
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")
    config = RateLimitConfig(max_requests=client_max, window_ms=DAY_MS, storage_key="search-limit")
    return SearchSession(ClientAdmissionGate(config, env, clock=clock), http)


def test_local_gate_blocks_before_calling_backend(env, clock) -> None:
    upstream = StaticRecommendations()
    session = _session(env, clock, client_max=2, server_max=10, upstream=upstream)
    session.start()

    first, second, third = _run_searches(session, 3)

    assert first.limited is False
    assert first.payload == PAYLOAD
    assert first.remaining == 9
    assert second.limited is False
    assert third.limited is True
    assert third.countdown == "24h 0m"
    assert third.retry_after_ms == DAY_MS
    assert upstream.calls == 2


def test_server_429_becomes_limited_outcome(env, clock) -> None:
    upstream = StaticRecommendations()
    session = _session(env, clock, client_max=5, server_max=2, upstream=upstream)

    outcomes = _run_searches(session, 3)

    assert [o.limited for o in outcomes] == [False, False, True]
    assert outcomes[1].remaining == 0
    denied = outcomes[2]
    assert denied.message.startswith("BETA")
    assert denied.retry_after_ms == DAY_MS
    assert denied.countdown == "24h 0m"
    assert upstream.calls == 2


def test_start_restores_state_from_previous_page(env, clock) -> None:
    upstream = StaticRecommendations()
    _run_searches(_session(env, clock, client_max=2, server_max=10, upstream=upstream), 2)

    reloaded = _session(env, clock, client_max=2, server_max=10, upstream=upstream)
    state = reloaded.start()

    assert state.is_limited is True
    assert state.reset_time == DAY_MS


@respx.mock
def test_backend_error_propagates(env, clock) -> None:
    respx.get("http://backend.test/api/restaurants").mock(return_value=httpx.Response(500, json={}))
    config = RateLimitConfig(max_requests=2, window_ms=DAY_MS, storage_key="search-limit")
    session = SearchSession(
        ClientAdmissionGate(config, env, clock=clock),
        httpx.AsyncClient(),
        base_url="http://backend.test/",
    )

    with pytest.raises(httpx.HTTPStatusError):
        _run_searches(session, 1)


def test_client_limit_config_from_settings() -> None:
    config = client_limit_config()

    assert config.max_requests == 2
    assert config.window_ms == DAY_MS
    assert config.storage_key == "restaurant-search-rate-limit"


def test_for_environment_builds_gate(env) -> None:
    session = SearchSession.for_environment(env, httpx.AsyncClient())

    assert session.gate.config == client_limit_config()


def test_for_environment_cookie_uses_configured_max_age(env, monkeypatch) -> None:
    monkeypatch.setattr(settings.client_limit, "cookie_max_age_seconds", 3600)
    session = SearchSession.for_environment(env, httpx.AsyncClient())

    assert session.gate.check() is False
    header = env.cookie.set_cookie_header(client_limit_config().storage_key)
    assert header.endswith("; path=/; max-age=3600")
