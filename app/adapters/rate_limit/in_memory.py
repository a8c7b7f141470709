"""In-memory fixed-window admission gate.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
  A restarted process starts with an empty map.
- Thread-safe: every read, increment and eviction happens under one lock,
  so the comparison against the cap and the increment are atomic.
- Windows start at a key's first admitted request, not on a calendar
  boundary. A burst straddling two windows can reach ``2 * limit``.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class WindowRecord:
    window_start: int
    count: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping one fixed window per client identity.

    Entries whose window started more than ``2 * window_ms`` ago are removed
    by :meth:`sweep`, which is driven by a timer rather than by requests.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of admitted requests per window.
            window_ms: Size of the window in milliseconds.
            clock: Time source returning epoch milliseconds.

        Raises:
            ValueError: If limit or window_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, WindowRecord] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def get_record(self, key: str) -> WindowRecord | None:
        """Return a copy of the stored window for ``key`` (for inspection)."""
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            return WindowRecord(window_start=record.window_start, count=record.count)

    def _blocked(self, *, now: int, reset_at: int) -> RateLimitResult:
        retry_after = max(0, int(math.ceil((reset_at - now) / 1000)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )

    def admit(self, key: str) -> RateLimitResult:
        """Admit or deny one request for ``key``.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            record = self._records.get(key)

            if record is None or now - record.window_start >= self._window_ms:
                record = WindowRecord(window_start=now, count=1)
                self._records[key] = record
            elif record.count >= self._limit:
                return self._blocked(now=now, reset_at=record.window_start + self._window_ms)
            else:
                record.count += 1

            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=max(0, self._limit - record.count),
                reset_at=record.window_start + self._window_ms,
                retry_after_seconds=None,
            )

    def sweep(self, now: int | None = None) -> int:
        if now is None:
            now = self._clock()
        horizon = 2 * self._window_ms

        with self._lock:
            stale = [k for k, r in self._records.items() if now - r.window_start > horizon]
            for key in stale:
                del self._records[key]
        return len(stale)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
