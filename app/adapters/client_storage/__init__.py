"""Client-side storage backends.

A browser offers three places to keep a small string: durable storage
(``localStorage``), session storage (``sessionStorage``) and cookies. The
admission gate talks to them only through :class:`AbstractStorageBackend`,
so its logic runs (and is tested) without a browser.
"""

from app.adapters.client_storage.base import (
    AbstractStorageBackend,
    StorageQuotaExceededError,
    StorageWriteError,
)
from app.adapters.client_storage.cookie import CookieStorageBackend
from app.adapters.client_storage.in_memory import InMemoryStorageBackend

__all__ = [
    "AbstractStorageBackend",
    "CookieStorageBackend",
    "InMemoryStorageBackend",
    "StorageQuotaExceededError",
    "StorageWriteError",
]
