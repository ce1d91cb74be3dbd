"""Progress tracking for a running batch."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from txbatch.models.submission import FailureRecord, SubmissionResult

logger = structlog.get_logger(__name__)


@dataclass
class ProgressTracker:
    """Collects settled items in order and reports progress."""

    total: int
    results: list[SubmissionResult] = field(default_factory=list)
    failures: list[FailureRecord] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)

    def record_success(self, result: SubmissionResult) -> None:
        self.results.append(result)

    def record_failure(self, failure: FailureRecord) -> None:
        self.failures.append(failure)

    @property
    def successful(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def processed(self) -> int:
        return self.successful + self.failed

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since start."""
        return time.monotonic() - self.start_time

    @property
    def progress_percentage(self) -> float:
        """Percentage of planned items settled."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100.0

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N items and at the end."""
        if self.processed % every_n == 0 or self.processed == self.total:
            logger.info(
                "batch_progress",
                processed=self.processed,
                total=self.total,
                successful=self.successful,
                failed=self.failed,
                percentage=f"{self.progress_percentage:.1f}%",
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )
