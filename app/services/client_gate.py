"""Client-side admission gate.

Fixed-window counting over the redundant counter store, keyed by a storage
key and stamped with the session fingerprint. Decisions are made only when
a request is about to be sent (:meth:`ClientAdmissionGate.check`) and once
when the session starts (:meth:`ClientAdmissionGate.initialize`); nothing
runs in the background.

Several tabs of one browser share storage without compare-and-swap, so
concurrent checks can overshoot the cap by the number of racing tabs. The
server gate is the backstop for that.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.core.logging import hash_for_log
from app.schemas.rate_limit import RateLimitConfig, StoredRecord
from app.services.counter_store import ManipulationReport, RedundantCounterStore
from app.services.environment import EnvironmentReader
from app.services.fingerprint import BrowserFingerprinter

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ClientLimiterState:
    """Observable limiter state."""

    is_limited: bool
    remaining_requests: int
    reset_time: int | None = None

    @classmethod
    def fresh(cls, config: RateLimitConfig) -> "ClientLimiterState":
        return cls(is_limited=False, remaining_requests=config.max_requests, reset_time=None)


@dataclass(frozen=True)
class Evaluation:
    """Result of :func:`evaluate`.

    Attributes:
        record: Record to persist (unchanged when blocked).
        state: State to publish.
        blocked: Whether the request must not be sent.
    """

    record: StoredRecord
    state: ClientLimiterState
    blocked: bool


def window_elapsed(record: StoredRecord, config: RateLimitConfig, now: int) -> bool:
    return now >= record.timestamp + config.window_ms


def evaluate(
    record: StoredRecord | None,
    config: RateLimitConfig,
    now: int,
    fingerprint: str | None = None,
) -> Evaluation:
    """Decide one request against the stored window.

    A missing or elapsed record starts a fresh window at ``now``. A full
    window blocks without consuming anything; otherwise the count is
    incremented and stamped with ``fingerprint``.
    """
    if record is None or window_elapsed(record, config, now):
        record = StoredRecord(timestamp=now, count=0, fingerprint=fingerprint)

    reset_time = record.timestamp + config.window_ms

    if record.count >= config.max_requests:
        return Evaluation(
            record=record,
            state=ClientLimiterState(is_limited=True, remaining_requests=0, reset_time=reset_time),
            blocked=True,
        )

    updated = record.model_copy(
        update={"count": record.count + 1, "fingerprint": fingerprint or record.fingerprint}
    )
    return Evaluation(
        record=updated,
        state=ClientLimiterState(
            is_limited=False,
            remaining_requests=config.max_requests - updated.count,
            reset_time=reset_time if updated.count >= config.max_requests else None,
        ),
        blocked=False,
    )


def project_state(record: StoredRecord | None, config: RateLimitConfig, now: int) -> ClientLimiterState:
    """State matching a stored record, without consuming quota."""
    if record is None or window_elapsed(record, config, now):
        return ClientLimiterState.fresh(config)
    if record.count >= config.max_requests:
        return ClientLimiterState(
            is_limited=True,
            remaining_requests=0,
            reset_time=record.timestamp + config.window_ms,
        )
    return ClientLimiterState(
        is_limited=False,
        remaining_requests=config.max_requests - record.count,
        reset_time=None,
    )


class ClientAdmissionGate:
    """Admission gate for one rate-limited resource in one session.

    Args:
        config: Policy and storage key.
        env: Environment providing attributes and storage backends.
        fingerprinter: Fingerprint provider; built from ``env`` if omitted.
        store: Replicated store; built from ``env`` if omitted.
        clock: Time source returning epoch milliseconds.
    """

    def __init__(
        self,
        config: RateLimitConfig,
        env: EnvironmentReader,
        *,
        fingerprinter: BrowserFingerprinter | None = None,
        store: RedundantCounterStore | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.config = config
        self._env = env
        self._fingerprinter = fingerprinter or BrowserFingerprinter(env)
        self._store = store or RedundantCounterStore(env)
        self._clock = clock
        self._state = ClientLimiterState.fresh(config)
        self._initialized = False
        self.last_manipulation: ManipulationReport | None = None

    @property
    def state(self) -> ClientLimiterState:
        return self._state

    @property
    def is_limited(self) -> bool:
        return self._state.is_limited

    @property
    def remaining_requests(self) -> int:
        return self._state.remaining_requests

    @property
    def reset_time(self) -> int | None:
        return self._state.reset_time

    def _publish(self, state: ClientLimiterState) -> ClientLimiterState:
        self._state = state
        return state

    def initialize(self) -> ClientLimiterState:
        """Restore the displayed state from storage once per session.

        Never consumes quota. An elapsed window is cleared from every
        backend. Until a fingerprint is available this is a no-op and may
        be called again.
        """
        if self._initialized:
            return self._state
        if self._fingerprinter.get_fingerprint() is None:
            return self._state

        self._initialized = True
        now = self._clock()
        record = self._store.read(self.config.storage_key)

        if record is not None and window_elapsed(record, self.config, now):
            self._store.clear(self.config.storage_key)
            return self._publish(ClientLimiterState.fresh(self.config))
        return self._publish(project_state(record, self.config, now))

    def detect_manipulation(self) -> bool:
        """Run the tamper heuristics; True when something looked off.

        The result is informational. It never blocks by itself because
        fingerprints legitimately change (browser updates, new screens).
        """
        fingerprint = self._fingerprinter.get_fingerprint()
        if fingerprint is None:
            return False
        self.last_manipulation = self._store.inspect(self.config.storage_key, fingerprint)
        return self.last_manipulation.suspicious

    def check(self) -> bool:
        """Account for a request about to be sent.

        Returns:
            True when the request is blocked, False when it may proceed.
        """
        fingerprint = self._fingerprinter.get_fingerprint()
        if fingerprint is None:
            return False

        self.detect_manipulation()

        now = self._clock()
        record = self._store.read(self.config.storage_key)
        result = evaluate(record, self.config, now, fingerprint)
        self._publish(result.state)

        if result.blocked:
            logger.info(
                "client_gate.blocked",
                extra={
                    "key_hash": hash_for_log(self.config.storage_key),
                    "reset_time": result.state.reset_time,
                },
            )
            return True

        self._store.write(self.config.storage_key, result.record)
        return False

    def remaining_time(self) -> int:
        """Milliseconds until the published reset time (0 when none)."""
        if self._state.reset_time is None:
            return 0
        return max(0, self._state.reset_time - self._clock())

    def reset(self) -> ClientLimiterState:
        """Forget the stored window everywhere and publish a fresh state."""
        self._store.clear(self.config.storage_key)
        return self._publish(ClientLimiterState.fresh(self.config))
