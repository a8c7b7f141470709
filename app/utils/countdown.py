"""Human-readable countdowns for rate limit messages."""

from __future__ import annotations

import math


def format_countdown(remaining_ms: int) -> str:
    """Format a duration as a short countdown.

    Examples:
        >>> format_countdown(86_399_000)
        '23h 59m'
        >>> format_countdown(303_000)
        '5m 3s'
        >>> format_countdown(999)
        '1s'
        >>> format_countdown(0)
        '0s'
    """
    if remaining_ms <= 0:
        return "0s"

    total_seconds = math.ceil(remaining_ms / 1000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
