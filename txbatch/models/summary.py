"""Aggregate outcome of one batch run."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from txbatch.models.batch_config import BatchMode
from txbatch.models.submission import FailureRecord, SubmissionResult


class BatchRunSummary(BaseModel):
    """Totals, ordered results and failures of a finished run."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    mode: BatchMode
    wallet: str
    total: int
    successful: int
    failed: int
    duration: float
    results: list[SubmissionResult] = Field(default_factory=list)
    failures: list[FailureRecord] = Field(default_factory=list, alias="failedTransactions")
    log_path: str | None = None
    balances: dict[str, str] | None = None
    planned_total: str | None = None

    @model_validator(mode="after")
    def validate_totals(self) -> BatchRunSummary:
        """successful + failed == total, and the counts match the recorded outcomes."""
        if self.successful + self.failed != self.total:
            msg = (
                f"successful ({self.successful}) + failed ({self.failed}) "
                f"must equal total ({self.total})"
            )
            raise ValueError(msg)
        if self.successful != len(self.results) or self.failed != len(self.failures):
            msg = "successful/failed counts must match the recorded results and failures"
            raise ValueError(msg)
        return self

    @property
    def success(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready camelCase view."""
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        data["success"] = self.success
        data["duration"] = f"{self.duration:.2f}"
        return data
