"""Tests for the client-side admission gate."""

import pytest

from app.schemas.rate_limit import RateLimitConfig, StoredRecord
from app.services.client_gate import (
    ClientAdmissionGate,
    ClientLimiterState,
    evaluate,
    project_state,
)
from app.services.counter_store import RedundantCounterStore
from app.services.environment import StaticEnvironment
from app.services.fingerprint import BrowserFingerprinter, CACHE_KEY

DAY_MS = 86_400_000
CONFIG = RateLimitConfig(max_requests=2, window_ms=DAY_MS, storage_key="restaurant-search-rate-limit")
KEY = CONFIG.storage_key


@pytest.fixture
def gate(env, clock) -> ClientAdmissionGate:
    return ClientAdmissionGate(CONFIG, env, clock=clock)


def _stored(env) -> StoredRecord:
    return StoredRecord.from_storage(env.durable.get(KEY))


def test_daily_scenario(gate: ClientAdmissionGate, env, clock) -> None:
    clock.set(0)
    assert gate.check() is False
    assert gate.remaining_requests == 1

    clock.set(1_000)
    assert gate.check() is False
    assert gate.remaining_requests == 0

    clock.set(2_000)
    assert gate.check() is True
    assert gate.is_limited is True
    assert gate.remaining_requests == 0
    assert gate.reset_time == 86_400_000
    assert _stored(env).count == 2

    clock.set(86_400_001)
    assert gate.check() is False
    assert gate.remaining_requests == 1
    assert gate.is_limited is False
    assert _stored(env).timestamp == 86_400_001
    assert _stored(env).count == 1


def test_blocked_checks_never_increment(gate: ClientAdmissionGate, env) -> None:
    gate.check()
    gate.check()
    for _ in range(5):
        assert gate.check() is True

    assert _stored(env).count == 2


def test_elapsed_window_resets_regardless_of_count(gate: ClientAdmissionGate, env, clock) -> None:
    env.durable.set(KEY, StoredRecord(timestamp=0, count=50).to_storage())
    env.session.set(KEY, StoredRecord(timestamp=0, count=50).to_storage())

    clock.set(DAY_MS)
    assert gate.check() is False
    assert _stored(env).count == 1


def test_check_stamps_fingerprint(gate: ClientAdmissionGate, env) -> None:
    gate.check()

    assert _stored(env).fingerprint == env.session.get(CACHE_KEY)


def test_fail_open_without_identity(clock) -> None:
    env = StaticEnvironment.unavailable()
    gate = ClientAdmissionGate(CONFIG, env, clock=clock)

    assert gate.initialize() == ClientLimiterState.fresh(CONFIG)
    for _ in range(5):
        assert gate.check() is False
    assert env.durable.get(KEY) is None


def test_initialize_restores_state_without_consuming(env, clock) -> None:
    first = ClientAdmissionGate(CONFIG, env, clock=clock)
    first.check()

    clock.advance(10_000)
    reloaded = ClientAdmissionGate(CONFIG, env, clock=clock)
    for _ in range(3):
        state = reloaded.initialize()

    assert state == ClientLimiterState(is_limited=False, remaining_requests=1, reset_time=None)
    assert _stored(env).count == 1


def test_initialize_is_idempotent_on_stored_count(env, clock) -> None:
    ClientAdmissionGate(CONFIG, env, clock=clock).check()

    for _ in range(10):
        ClientAdmissionGate(CONFIG, env, clock=clock).initialize()

    assert _stored(env).count == 1


def test_initialize_restores_limited_state(env, clock) -> None:
    first = ClientAdmissionGate(CONFIG, env, clock=clock)
    first.check()
    first.check()

    reloaded = ClientAdmissionGate(CONFIG, env, clock=clock)
    state = reloaded.initialize()

    assert state.is_limited is True
    assert state.remaining_requests == 0
    assert state.reset_time == DAY_MS
    assert reloaded.remaining_time() == DAY_MS


def test_initialize_clears_elapsed_window(env, clock) -> None:
    first = ClientAdmissionGate(CONFIG, env, clock=clock)
    first.check()
    first.check()

    clock.set(DAY_MS + 1)
    state = ClientAdmissionGate(CONFIG, env, clock=clock).initialize()

    assert state == ClientLimiterState.fresh(CONFIG)
    assert all(b.get(KEY) is None for b in (env.durable, env.session, env.cookie))


def test_initialize_with_corrupt_record_fails_open(env, clock) -> None:
    env.durable.set(KEY, "{oops")
    env.session.set(KEY, "{oops")
    gate = ClientAdmissionGate(CONFIG, env, clock=clock)

    assert gate.initialize() == ClientLimiterState.fresh(CONFIG)
    assert gate.check() is False
    assert _stored(env).count == 1


def test_fingerprint_mismatch_is_reported_but_not_enforced(env, clock) -> None:
    limited = StoredRecord(timestamp=0, count=1, fingerprint="F1").to_storage()
    env.durable.set(KEY, limited)
    env.session.set(KEY, limited)
    env.session.set(CACHE_KEY, "F2")
    gate = ClientAdmissionGate(CONFIG, env, clock=clock)

    assert gate.check() is False

    assert gate.last_manipulation.fingerprint_mismatch is True
    assert gate.is_limited is False
    assert gate.remaining_requests == 0
    assert _stored(env).fingerprint == "F2"


def test_fingerprint_mismatch_on_limited_record_keeps_limited_state(env, clock) -> None:
    full = StoredRecord(timestamp=0, count=2, fingerprint="F1").to_storage()
    env.durable.set(KEY, full)
    env.session.set(KEY, full)
    env.session.set(CACHE_KEY, "F2")
    gate = ClientAdmissionGate(CONFIG, env, clock=clock)

    assert gate.check() is True
    assert gate.last_manipulation.fingerprint_mismatch is True
    assert gate.state == ClientLimiterState(is_limited=True, remaining_requests=0, reset_time=DAY_MS)


def test_partially_cleared_storage_is_healed(gate: ClientAdmissionGate, env) -> None:
    gate.check()
    env.durable.remove(KEY)

    assert gate.detect_manipulation() is True
    assert gate.last_manipulation.presence_mismatch is True
    assert env.durable.get(KEY) == env.session.get(KEY)

    gate.check()
    assert gate.check() is True


def test_clearing_primaries_does_not_reset_quota(gate: ClientAdmissionGate, env) -> None:
    gate.check()
    gate.check()
    env.durable.remove(KEY)
    env.session.remove(KEY)

    assert gate.check() is True


def test_reset_clears_everything(gate: ClientAdmissionGate, env) -> None:
    gate.check()
    gate.check()

    assert gate.reset() == ClientLimiterState.fresh(CONFIG)
    assert all(b.get(KEY) is None for b in (env.durable, env.session, env.cookie))
    assert gate.check() is False


def test_remaining_time(gate: ClientAdmissionGate, clock) -> None:
    assert gate.remaining_time() == 0

    gate.check()
    gate.check()
    clock.set(DAY_MS - 500)
    assert gate.remaining_time() == 500

    clock.set(DAY_MS + 500)
    assert gate.remaining_time() == 0


def test_shared_components_can_be_injected(env, clock) -> None:
    fingerprinter = BrowserFingerprinter(env)
    store = RedundantCounterStore(env)
    gate = ClientAdmissionGate(CONFIG, env, fingerprinter=fingerprinter, store=store, clock=clock)

    gate.check()

    assert store.read(KEY).fingerprint == fingerprinter.get_fingerprint()


def test_evaluate_is_pure() -> None:
    record = StoredRecord(timestamp=0, count=1)

    result = evaluate(record, CONFIG, 10, "F")

    assert record.count == 1
    assert result.record.count == 2
    assert result.record.fingerprint == "F"
    assert result.blocked is False
    assert result.state.reset_time == DAY_MS


def test_evaluate_missing_record_starts_window_now() -> None:
    result = evaluate(None, CONFIG, 42)

    assert result.record.timestamp == 42
    assert result.record.count == 1
    assert result.state.remaining_requests == 1
    assert result.state.reset_time is None


def test_project_state_matches_record() -> None:
    assert project_state(None, CONFIG, 0) == ClientLimiterState.fresh(CONFIG)
    assert project_state(StoredRecord(timestamp=0, count=1), CONFIG, 5).remaining_requests == 1
    assert project_state(StoredRecord(timestamp=0, count=2), CONFIG, 5).is_limited is True
    assert project_state(StoredRecord(timestamp=0, count=2), CONFIG, DAY_MS).is_limited is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_requests": 0, "window_ms": DAY_MS, "storage_key": "k"},
        {"max_requests": 2, "window_ms": 0, "storage_key": "k"},
        {"max_requests": 2, "window_ms": DAY_MS, "storage_key": ""},
    ],
)
def test_invalid_config_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimitConfig(**kwargs)


def test_corrupt_durable_record_does_not_refill_quota(gate: ClientAdmissionGate, env) -> None:
    gate.check()
    gate.check()
    assert gate.check() is True

    env.durable.set(KEY, "garbage")

    assert gate.check() is True
    assert _stored(env).count == 2
    assert StoredRecord.from_storage(env.session.get(KEY)).count == 2
