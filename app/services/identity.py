"""Server-side client identification from transport metadata.

The identity is ``<ip>_<ua-digest>``. Two requests carrying identical
(possibly spoofed) headers map to the same identity; that is accepted, the
goal being to make casual abuse more expensive rather than impossible.
"""

from __future__ import annotations

import hashlib
from typing import Mapping

LOOPBACK_FALLBACK = "127.0.0.1"
USER_AGENT_PREFIX_CHARS = 100
USER_AGENT_DIGEST_CHARS = 16

# Checked in order; the first header present wins.
IP_HEADERS = ("x-forwarded-for", "x-real-ip", "x-client-ip")


def _first_hop(value: str) -> str:
    return value.split(",")[0].strip()


def resolve_client_ip(headers: Mapping[str, str]) -> str:
    """Pick the client IP from proxy headers.

    The first hop of ``X-Forwarded-For`` is preferred, then ``X-Real-IP``,
    then ``X-Client-IP``. Without any of them (no proxy in front, e.g. local
    development) a loopback address is used.
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in IP_HEADERS:
        value = lowered.get(name)
        if not value:
            continue
        ip = _first_hop(value) if name == "x-forwarded-for" else value.strip()
        if ip:
            return ip
    return LOOPBACK_FALLBACK


def user_agent_digest(user_agent: str | None) -> str:
    prefix = (user_agent or "unknown")[:USER_AGENT_PREFIX_CHARS]
    return hashlib.sha256(prefix.encode("utf-8")).hexdigest()[:USER_AGENT_DIGEST_CHARS]


def derive_identity(headers: Mapping[str, str]) -> str:
    """Derive a deterministic client identity from request headers.

    Args:
        headers: Request headers (any mapping; names are matched
            case-insensitively).

    Returns:
        Identity string such as ``"203.0.113.5_9f86d081884c7d65"``.
    """
    lowered = {k.lower(): v for k, v in headers.items()}
    ip = resolve_client_ip(lowered)
    return f"{ip}_{user_agent_digest(lowered.get('user-agent'))}"
