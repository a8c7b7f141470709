"""Dict-backed storage mimicking ``localStorage``/``sessionStorage``."""

from __future__ import annotations

from app.adapters.client_storage.base import (
    AbstractStorageBackend,
    StorageQuotaExceededError,
    StorageWriteError,
)


class InMemoryStorageBackend(AbstractStorageBackend):
    """In-memory key-value storage.

    Args:
        name: Label used in logs (e.g. ``"durable"``, ``"session"``).
        quota_bytes: Optional cap on the total size of keys plus values.
        disabled: Simulates storage turned off by the user agent; reads
            return None and writes raise.
    """

    def __init__(self, name: str = "memory", *, quota_bytes: int | None = None, disabled: bool = False) -> None:
        self.name = name
        self.quota_bytes = quota_bytes
        self.disabled = disabled
        self._items: dict[str, str] = {}

    @property
    def available(self) -> bool:
        return not self.disabled

    def _size_with(self, key: str, value: str) -> int:
        items = dict(self._items)
        items[key] = value
        return sum(len(k) + len(v) for k, v in items.items())

    def get(self, key: str) -> str | None:
        if self.disabled:
            return None
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        if self.disabled:
            raise StorageWriteError(f"{self.name} storage is disabled")
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageQuotaExceededError(f"{self.name} storage quota exceeded")
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)
