"""Best-effort browser fingerprint.

The fingerprint is a weak, non-PII identifier used only as a secondary
tamper signal. It is computed once per session and cached in session
storage; later calls return the cached value even if the environment has
changed since.
"""

from __future__ import annotations

import base64
import json
import logging
import re

from app.adapters.client_storage.base import StorageWriteError
from app.services.environment import EnvironmentReader, EnvironmentSnapshot

logger = logging.getLogger(__name__)

CACHE_KEY = "browser-fingerprint"
FINGERPRINT_LENGTH = 32
USER_AGENT_PREFIX_CHARS = 100

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def compute_fingerprint(snapshot: EnvironmentSnapshot) -> str:
    """Encode a snapshot into a short opaque string."""
    data = {
        "screen": f"{snapshot.screen_width}x{snapshot.screen_height}x{snapshot.color_depth}",
        "timezone": snapshot.timezone,
        "language": snapshot.language,
        "platform": snapshot.platform,
        "userAgent": snapshot.user_agent[:USER_AGENT_PREFIX_CHARS],
        "cookieEnabled": snapshot.cookie_enabled,
        "doNotTrack": snapshot.do_not_track or "unknown",
    }
    encoded = base64.b64encode(
        json.dumps(data, separators=(",", ":")).encode("utf-8")
    ).decode("ascii")
    return _NON_ALNUM.sub("", encoded)[:FINGERPRINT_LENGTH]


class BrowserFingerprinter:
    """Session-scoped fingerprint provider."""

    def __init__(self, env: EnvironmentReader) -> None:
        self._env = env
        self._value: str | None = None

    def get_fingerprint(self) -> str | None:
        """Return the session fingerprint, or None when the environment
        cannot provide one (identity unknown)."""
        if self._value is not None:
            return self._value
        if not self._env.available:
            return None

        cached = self._env.session.get(CACHE_KEY)
        if cached:
            self._value = cached
            return cached

        value = compute_fingerprint(self._env.snapshot())
        try:
            self._env.session.set(CACHE_KEY, value)
        except StorageWriteError as exc:
            logger.warning("fingerprint.cache_failed", extra={"error_msg": str(exc)})
        self._value = value
        return value
