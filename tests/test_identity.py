"""Tests for server-side client identification."""

from app.services.identity import (
    LOOPBACK_FALLBACK,
    derive_identity,
    resolve_client_ip,
    user_agent_digest,
)

UA = "Mozilla/5.0 (X11; Linux x86_64) Firefox/128.0"


def test_forwarded_for_first_hop_wins() -> None:
    headers = {
        "X-Forwarded-For": "203.0.113.5, 10.0.0.1, 10.0.0.2",
        "X-Real-IP": "198.51.100.7",
        "X-Client-IP": "192.0.2.1",
    }
    assert resolve_client_ip(headers) == "203.0.113.5"


def test_priority_falls_through_headers() -> None:
    assert resolve_client_ip({"x-real-ip": "198.51.100.7", "x-client-ip": "192.0.2.1"}) == "198.51.100.7"
    assert resolve_client_ip({"x-client-ip": "192.0.2.1"}) == "192.0.2.1"
    assert resolve_client_ip({}) == LOOPBACK_FALLBACK


def test_empty_forwarded_for_is_ignored() -> None:
    assert resolve_client_ip({"x-forwarded-for": " ", "x-real-ip": "198.51.100.7"}) == "198.51.100.7"


def test_identity_combines_ip_and_user_agent_digest() -> None:
    identity = derive_identity({"X-Forwarded-For": "203.0.113.5", "User-Agent": UA})

    ip, digest = identity.split("_")
    assert ip == "203.0.113.5"
    assert digest == user_agent_digest(UA)
    assert len(digest) == 16


def test_identity_is_deterministic_and_case_insensitive() -> None:
    a = derive_identity({"X-Forwarded-For": "203.0.113.5", "User-Agent": UA})
    b = derive_identity({"x-forwarded-for": "203.0.113.5", "user-agent": UA})
    assert a == b


def test_only_first_100_user_agent_chars_matter() -> None:
    base = "A" * 100
    assert user_agent_digest(base + "tail-1") == user_agent_digest(base + "tail-2")
    assert user_agent_digest("B" + base) != user_agent_digest(base)


def test_missing_user_agent_uses_unknown() -> None:
    assert derive_identity({}) == f"{LOOPBACK_FALLBACK}_{user_agent_digest('unknown')}"
