"""Client environment capability.

Everything the client-side gate would read from browser globals (screen,
locale, navigator) and the storage backends it writes to are supplied
through :class:`EnvironmentReader`. A reader that reports itself
unavailable stands for a non-browser context (server rendering, scripts):
consumers then fall back to an inert state instead of raising.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.adapters.client_storage.base import AbstractStorageBackend
from app.adapters.client_storage.cookie import CookieStorageBackend
from app.adapters.client_storage.in_memory import InMemoryStorageBackend


@dataclass(frozen=True)
class EnvironmentSnapshot:
    """Ambient attributes the fingerprint is derived from."""

    screen_width: int
    screen_height: int
    color_depth: int
    timezone: str
    language: str
    platform: str
    user_agent: str
    cookie_enabled: bool
    do_not_track: str | None = None


class EnvironmentReader(ABC):
    """Provider of environment attributes and storage backends."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """False when running outside a browser-like environment."""

    @abstractmethod
    def snapshot(self) -> EnvironmentSnapshot:
        """Read the current environment attributes."""

    @property
    @abstractmethod
    def durable(self) -> AbstractStorageBackend:
        """Storage surviving restarts until explicitly cleared."""

    @property
    @abstractmethod
    def session(self) -> AbstractStorageBackend:
        """Storage scoped to the current session."""

    @property
    @abstractmethod
    def cookie(self) -> AbstractStorageBackend:
        """Cookie storage with expiry."""


class StaticEnvironment(EnvironmentReader):
    """Environment backed by a fixed snapshot and in-memory storage.

    Used by tests and by non-browser callers that still want the gate's
    behavior (e.g. a CLI search client). Storage backends can be shared
    between instances to simulate several sessions of one browser.
    """

    def __init__(
        self,
        snapshot: EnvironmentSnapshot | None,
        *,
        durable: AbstractStorageBackend | None = None,
        session: AbstractStorageBackend | None = None,
        cookie: AbstractStorageBackend | None = None,
    ) -> None:
        self._snapshot = snapshot
        self._durable = durable or InMemoryStorageBackend("durable")
        self._session = session or InMemoryStorageBackend("session")
        self._cookie = cookie or CookieStorageBackend()

    @classmethod
    def unavailable(cls) -> "StaticEnvironment":
        return cls(None)

    @property
    def available(self) -> bool:
        return self._snapshot is not None

    def snapshot(self) -> EnvironmentSnapshot:
        if self._snapshot is None:
            raise RuntimeError("environment is not available")
        return self._snapshot

    def replace_snapshot(self, snapshot: EnvironmentSnapshot) -> None:
        """Swap the attributes, as when the environment mutates mid-session."""
        self._snapshot = snapshot

    @property
    def durable(self) -> AbstractStorageBackend:
        return self._durable

    @property
    def session(self) -> AbstractStorageBackend:
        return self._session

    @property
    def cookie(self) -> AbstractStorageBackend:
        return self._cookie
