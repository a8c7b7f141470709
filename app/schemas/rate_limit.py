"""Pydantic schemas shared by the client-side admission gate."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RateLimitConfig(BaseModel):
    """Policy for one logically rate-limited resource.

    The same config must be used for every check against a given
    ``storage_key``; otherwise stored counts are not comparable.
    """

    model_config = ConfigDict(frozen=True)

    max_requests: int = Field(..., gt=0, description="Requests allowed per window.")
    window_ms: int = Field(..., gt=0, description="Window length in milliseconds.")
    storage_key: str = Field(..., min_length=1, description="Key the record is stored under.")


class StoredRecord(BaseModel):
    """Window record as persisted in client-side storage.

    Serialized as compact JSON: ``{"timestamp": ..., "count": ..., "fingerprint": ...}``
    where ``timestamp`` is the window start in epoch milliseconds.
    """

    timestamp: int = Field(..., description="Window start (epoch ms).")
    count: int = Field(..., ge=0, description="Requests made in the window.")
    fingerprint: str | None = Field(
        default=None,
        description="Fingerprint of the session that last incremented the count.",
    )

    def to_storage(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_storage(cls, raw: str) -> "StoredRecord":
        """Parse stored text.

        Raises:
            ValueError: If the text is not a valid record.
        """
        return cls.model_validate_json(raw)
