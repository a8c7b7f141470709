"""Storage backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StorageWriteError(Exception):
    """Raised when a backend refuses a write (disabled storage, quota, ...)."""


class StorageQuotaExceededError(StorageWriteError):
    """Raised when a write would exceed the backend's quota."""


class AbstractStorageBackend(ABC):
    """String key-value store with browser storage semantics."""

    name: str = "storage"

    @property
    def available(self) -> bool:
        """False when the user agent has this storage turned off."""
        return True

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value.

        Raises:
            StorageWriteError: If the backend cannot accept the write.
        """
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove a value; removing a missing key is a no-op."""
        raise NotImplementedError
