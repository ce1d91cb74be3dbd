"""Asynchronous job record tracked by the job registry."""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from txbatch.models.submission import FailureRecord, SubmissionResult
from txbatch.models.summary import BatchRunSummary


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


class JobStatus(StrEnum):
    """Job lifecycle: queued -> running -> completed | failed."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(StrEnum):
    """Which endpoint created the job."""

    BATCH = "batch"
    BATCH_SEND_RAW = "batch-send-raw"
    SEND_ETH = "send-eth"


class Job(BaseModel):
    """Mutable job state. Only the registry writes to it."""

    id: str
    type: JobType
    status: JobStatus = JobStatus.QUEUED
    config: dict[str, Any] = Field(default_factory=dict)
    created_at: int = Field(default_factory=now_ms)
    start_time: int | None = None
    end_time: int | None = None
    wallet: str | None = None
    balances: dict[str, str] | None = None
    planned: dict[str, Any] | None = None
    completed: int = 0
    total: int = 0
    transactions: list[SubmissionResult] = Field(default_factory=list)
    failures: list[FailureRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: BatchRunSummary | None = None
    error: str | None = None

    def to_view(self) -> dict[str, Any]:
        """Status document returned by GET /batch/{id}."""
        view: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "wallet": self.wallet,
            "balances": self.balances,
            "planned": self.planned,
            "completed": self.completed,
            "total": self.total,
            "transactions": [entry.to_log_entry() for entry in self.transactions],
            "failedTransactions": [entry.to_log_entry() for entry in self.failures],
            "createdAt": self.created_at,
            "warnings": self.warnings,
        }
        if self.status == JobStatus.COMPLETED and self.summary is not None:
            view["duration"] = f"{self.summary.duration:.2f}"
            view["logPath"] = self.summary.log_path
            view["endTime"] = self.end_time
            view["summary"] = self.summary.to_dict()
        if self.status == JobStatus.FAILED:
            view["error"] = self.error
            view["endTime"] = self.end_time
        return view

    def to_listing(self) -> dict[str, Any]:
        """Short form used by GET /batch."""
        return {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "wallet": self.wallet,
            "completed": self.completed,
            "total": self.total,
            "createdAt": self.created_at,
            "duration": f"{self.summary.duration:.2f}" if self.summary else None,
        }
