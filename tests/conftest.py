"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports ``app.core.config``.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("UPSTREAM_WEBHOOK_URL", "https://webhook.test/resto-reco")

import pytest

from app.services.environment import EnvironmentSnapshot, StaticEnvironment


class FakeClock:
    """Deterministic epoch-milliseconds clock."""

    def __init__(self, start: int = 0) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += ms

    def set(self, ms: int) -> None:
        self.current = ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def snapshot() -> EnvironmentSnapshot:
    return EnvironmentSnapshot(
        screen_width=1920,
        screen_height=1080,
        color_depth=24,
        timezone="Europe/Paris",
        language="fr-FR",
        platform="MacIntel",
        user_agent="Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 Safari/605.1.15",
        cookie_enabled=True,
        do_not_track=None,
    )


@pytest.fixture
def env(snapshot: EnvironmentSnapshot) -> StaticEnvironment:
    return StaticEnvironment(snapshot)
