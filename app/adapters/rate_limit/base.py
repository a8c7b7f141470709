"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the process-local store can be swapped for a shared one later without
touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one admission decision.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: Epoch milliseconds when the current window closes.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int | None
    retry_after_seconds: int | None

    @property
    def limited(self) -> bool:
        return not self.allowed


class AbstractRateLimiter(ABC):
    """Interface for server-side admission gates."""

    @abstractmethod
    def admit(self, key: str) -> RateLimitResult:
        """Decide whether one more request from ``key`` may proceed.

        Admission consumes one unit of the key's budget; a denial does not.

        Args:
            key: Client identity.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: int | None = None) -> int:
        """Drop stale per-key state.

        Args:
            now: Epoch milliseconds; defaults to the limiter's clock.

        Returns:
            Number of entries evicted.
        """
        raise NotImplementedError
