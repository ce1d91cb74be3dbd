"""Per-item outcomes of a batch run."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_OUTCOME_CONFIG = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class SentTransaction(BaseModel):
    """A broadcast transaction and, when observed, its confirmation."""

    model_config = _OUTCOME_CONFIG

    hash: str
    nonce: int
    from_address: str = Field(alias="from")
    to: str
    block_number: int | None = None
    status: int | None = None
    gas_used: str | None = None


class SubmissionResult(BaseModel):
    """A settled, successful item. Serialized as one transaction log entry."""

    model_config = _OUTCOME_CONFIG

    index: int
    hash: str
    nonce: int | None = None
    block_number: int | None = None
    status: int | None = None
    gas_used: str | None = None
    from_address: str | None = Field(default=None, alias="from")
    to: str | None = None
    amount: str | None = None
    units: str | None = None
    data: str | None = None
    round: int | None = None
    tx_index: int | None = None

    @classmethod
    def from_sent(cls, index: int, sent: SentTransaction, **metadata: Any) -> SubmissionResult:
        """Combine a broadcast outcome with the planned item's metadata."""
        return cls(**{**sent.model_dump(), **metadata, "index": index})

    def to_log_entry(self) -> dict[str, Any]:
        """camelCase JSON entry; unknown confirmation fields are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class FailureRecord(BaseModel):
    """An item that exhausted its retry budget or could not be sent."""

    model_config = _OUTCOME_CONFIG

    index: int
    to: str
    error: str
    amount: str | None = None
    data: str | None = None
    round: int | None = None
    tx_index: int | None = None

    def to_log_entry(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
