"""Cookie jar storage with ``max-age`` expiry.

Values are percent-encoded so JSON records survive the ``;``/``=`` syntax
of a cookie string.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable
from urllib.parse import quote, unquote

from app.adapters.client_storage.base import AbstractStorageBackend, StorageWriteError
from app.core.config import settings


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class _Cookie:
    value: str
    max_age_seconds: int
    expires_at: int


class CookieStorageBackend(AbstractStorageBackend):
    """Cookie-backed storage for a single origin (``path=/``).

    Without an explicit ``max_age_seconds`` each write uses
    ``settings.client_limit.cookie_max_age_seconds``.
    """

    name = "cookie"

    def __init__(
        self,
        *,
        max_age_seconds: int | None = None,
        enabled: bool = True,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.max_age_seconds = max_age_seconds
        self.enabled = enabled
        self._clock = clock
        self._jar: dict[str, _Cookie] = {}

    @property
    def available(self) -> bool:
        return self.enabled

    def _max_age(self) -> int:
        if self.max_age_seconds is not None:
            return self.max_age_seconds
        return settings.client_limit.cookie_max_age_seconds

    def _purge_expired(self) -> None:
        now = self._clock()
        for name in [n for n, c in self._jar.items() if c.expires_at <= now]:
            del self._jar[name]

    @property
    def document_cookie(self) -> str:
        """Cookie string as a page would see it (``a=1; b=2``)."""
        self._purge_expired()
        return "; ".join(f"{name}={c.value}" for name, c in self._jar.items())

    def set_cookie_header(self, key: str) -> str | None:
        """``Set-Cookie`` value that would recreate ``key`` in a browser."""
        cookie = self._jar.get(key)
        if cookie is None:
            return None
        return f"{key}={cookie.value}; path=/; max-age={cookie.max_age_seconds}"

    def get(self, key: str) -> str | None:
        if not self.enabled:
            return None
        for part in self.document_cookie.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name == key and value:
                return unquote(value)
        return None

    def set(self, key: str, value: str) -> None:
        if not self.enabled:
            raise StorageWriteError("cookies are disabled")
        max_age = self._max_age()
        self._jar[key] = _Cookie(
            value=quote(value, safe=""),
            max_age_seconds=max_age,
            expires_at=self._clock() + max_age * 1000,
        )

    def remove(self, key: str) -> None:
        self._jar.pop(key, None)
