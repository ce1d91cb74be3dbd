"""Transaction log files: one JSON array of successful submissions per run."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from txbatch.models.submission import SubmissionResult

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger(__name__)

LOG_SUFFIX = ".txlog.json"


def log_timestamp(now: float | None = None) -> str:
    """Whole unix seconds used as the log file stem."""
    return str(int(time.time() if now is None else now))


class TxLogRepository:
    """Reads and writes transaction logs under one directory."""

    def __init__(self, log_dir: str | Path) -> None:
        self.log_dir = Path(log_dir)

    def path_for(self, timestamp: str) -> Path:
        return self.log_dir / f"{timestamp}{LOG_SUFFIX}"

    def write(
        self,
        results: Sequence[SubmissionResult],
        timestamp: str | None = None,
    ) -> Path:
        """Write successful results, creating the directory if needed.

        Two runs finishing within the same second share a filename; the later
        write replaces the earlier file.
        """
        self.log_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(timestamp or log_timestamp())
        entries = [result.to_log_entry() for result in results]
        path.write_text(json.dumps(entries, indent=2), encoding="utf-8")
        logger.info("tx_log_written", path=str(path), entries=len(entries))
        return path

    def read(self, path: str | Path) -> list[SubmissionResult]:
        """Load a log file back into submission results."""
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return [SubmissionResult.model_validate(entry) for entry in raw]

    def list_logs(self) -> list[Path]:
        """Log files in the directory, oldest first."""
        if not self.log_dir.is_dir():
            return []
        return sorted(self.log_dir.glob(f"*{LOG_SUFFIX}"))
