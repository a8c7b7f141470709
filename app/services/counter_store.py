"""Window record replicated across the three client storage backends.

No backend is authoritative. Writes fan out to all of them; reads walk a
fixed priority order (durable, session, cookie) and repopulate any backend
that has lost the record, so a partial wipe converges on the next read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app.adapters.client_storage.base import AbstractStorageBackend, StorageWriteError
from app.core.logging import hash_for_log
from app.schemas.rate_limit import StoredRecord
from app.services.environment import EnvironmentReader

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManipulationReport:
    """Tamper signals observed on the stored record.

    Attributes:
        presence_mismatch: Durable and session storage disagreed on whether
            a record exists (healed by copying the present value).
        fingerprint_mismatch: The stored record was written by a session
            with a different fingerprint.
    """

    presence_mismatch: bool = False
    fingerprint_mismatch: bool = False

    @property
    def suspicious(self) -> bool:
        return self.presence_mismatch or self.fingerprint_mismatch


class RedundantCounterStore:
    """Replicated key-value access to :class:`StoredRecord` values."""

    def __init__(self, env: EnvironmentReader) -> None:
        self._durable = env.durable
        self._session = env.session
        self._primaries = (env.durable, env.session)
        self._backends: tuple[AbstractStorageBackend, ...] = (env.durable, env.session, env.cookie)

    @property
    def backends(self) -> tuple[AbstractStorageBackend, ...]:
        return self._backends

    def _safe_set(self, backend: AbstractStorageBackend, key: str, value: str) -> bool:
        try:
            backend.set(key, value)
        except StorageWriteError as exc:
            logger.warning(
                "client_store.write_failed",
                extra={"backend": backend.name, "key_hash": hash_for_log(key), "error_msg": str(exc)},
            )
            return False
        return True

    def write(self, key: str, record: StoredRecord) -> int:
        """Write the record to every backend.

        Backends that are turned off are skipped. A failing backend is
        logged and skipped; the others are still written.

        Returns:
            Number of backends that accepted the write.
        """
        raw = record.to_storage()
        return sum(self._safe_set(backend, key, raw) for backend in self._backends if backend.available)

    def read(self, key: str) -> StoredRecord | None:
        """Return the record from the highest-priority backend holding one.

        Malformed values are skipped and the next backend is tried; a
        malformed value found in durable or session storage is removed.
        Backends missing the record are back-filled with it. Returns None
        only when no backend holds a valid record.
        """
        raw: str | None = None
        record: StoredRecord | None = None
        for backend in self._backends:
            candidate = backend.get(key)
            if not candidate:
                continue
            try:
                record = StoredRecord.from_storage(candidate)
            except ValueError as exc:
                logger.warning(
                    "client_store.malformed_record",
                    extra={"backend": backend.name, "key_hash": hash_for_log(key), "error_msg": str(exc)},
                )
                if backend in self._primaries:
                    backend.remove(key)
                continue
            raw = candidate
            break

        if record is None or raw is None:
            return None

        for backend in self._backends:
            if backend.available and not backend.get(key):
                if self._safe_set(backend, key, raw):
                    logger.info(
                        "client_store.backfilled",
                        extra={"backend": backend.name, "key_hash": hash_for_log(key)},
                    )
        return record

    def inspect(self, key: str, fingerprint: str | None) -> ManipulationReport:
        """Look for signs of tampering and heal partial storage loss.

        Presence is only compared when both durable and session storage are
        available, so a browser with one of them turned off is not flagged
        on every call.

        Args:
            key: Storage key of the record.
            fingerprint: Current session fingerprint, if known.

        Returns:
            ManipulationReport describing what was observed.
        """
        durable_raw = self._durable.get(key)
        session_raw = self._session.get(key)

        presence_mismatch = False
        if self._durable.available and self._session.available and bool(durable_raw) != bool(session_raw):
            if durable_raw:
                presence_mismatch = self._safe_set(self._session, key, durable_raw)
            else:
                presence_mismatch = self._safe_set(self._durable, key, session_raw)
            if presence_mismatch:
                logger.warning(
                    "client_gate.manipulation_detected",
                    extra={"signal": "presence_mismatch", "key_hash": hash_for_log(key)},
                )

        stored: StoredRecord | None = None
        for raw in (durable_raw, session_raw):
            if not raw:
                continue
            try:
                stored = StoredRecord.from_storage(raw)
            except ValueError:
                continue
            break

        fingerprint_mismatch = bool(
            stored is not None and fingerprint and stored.fingerprint and stored.fingerprint != fingerprint
        )
        if fingerprint_mismatch:
            logger.warning(
                "client_gate.manipulation_detected",
                extra={"signal": "fingerprint_mismatch", "key_hash": hash_for_log(key)},
            )

        return ManipulationReport(
            presence_mismatch=presence_mismatch,
            fingerprint_mismatch=fingerprint_mismatch,
        )

    def clear(self, key: str) -> None:
        for backend in self._backends:
            backend.remove(key)
