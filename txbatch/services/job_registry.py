"""In-memory registry of asynchronous batch jobs run on a thread pool."""

from __future__ import annotations

import secrets
import string
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING, Any

import structlog

from txbatch.models.job import Job, JobStatus, JobType, now_ms
from txbatch.models.submission import SubmissionResult

if TYPE_CHECKING:
    from collections.abc import Callable

    from txbatch.models.batch_config import BatchConfig
    from txbatch.models.submission import FailureRecord
    from txbatch.services.orchestrator import BatchOrchestrator

logger = structlog.get_logger(__name__)

DEFAULT_MAX_CONCURRENT_JOBS = 4

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_job_id() -> str:
    """job_<epoch ms>_<9 random base36 chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"job_{int(time.time() * 1000)}_{suffix}"


class JobObserver:
    """Forwards orchestrator events for one job into the registry."""

    def __init__(self, registry: JobRegistry, job_id: str) -> None:
        self.registry = registry
        self.job_id = job_id

    def on_wallet_resolved(self, wallet: str) -> None:
        self.registry.update(self.job_id, lambda job: setattr(job, "wallet", wallet))

    def on_planned(
        self,
        total: int,
        planned_total: str | None,
        balances: dict[str, str] | None,
    ) -> None:
        def apply(job: Job) -> None:
            job.total = total
            job.balances = balances
            job.planned = {"count": total, "total": planned_total}

        self.registry.update(self.job_id, apply)

    def on_warning(self, message: str) -> None:
        self.registry.update(self.job_id, lambda job: job.warnings.append(message))

    def on_item_settled(
        self,
        completed: int,
        total: int,
        outcome: SubmissionResult | FailureRecord,
    ) -> None:
        def apply(job: Job) -> None:
            job.completed = completed
            job.total = total
            if isinstance(outcome, SubmissionResult):
                job.transactions.append(outcome)
            else:
                job.failures.append(outcome)

        self.registry.update(self.job_id, apply)


class JobRegistry:
    """Creates jobs, runs each exactly once on a worker thread and tracks its state.

    Jobs are mutated only through `JobObserver` callbacks and the final status
    update, all under one lock. Deleting a job removes the record; a run still in
    flight finishes but its updates are discarded.
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        max_workers: int = DEFAULT_MAX_CONCURRENT_JOBS,
    ) -> None:
        self.orchestrator = orchestrator
        self._jobs: dict[str, Job] = {}
        self._futures: dict[str, Future[None]] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="txbatch-job"
        )

    def create(self, config: BatchConfig, job_type: JobType) -> str:
        """Register a queued job for `config` and schedule it."""
        job_id = new_job_id()
        job = Job(
            id=job_id,
            type=job_type,
            config=config.redacted(),
            total=config.planned_count(),
        )
        with self._lock:
            # The run blocks on this lock until the record exists; a refused
            # submit leaves nothing behind.
            future = self._executor.submit(self._execute, job_id, config)
            self._jobs[job_id] = job
            self._futures[job_id] = future
        logger.info("job_created", job_id=job_id, type=job_type.value, total=job.total)
        return job_id

    def _execute(self, job_id: str, config: BatchConfig) -> None:
        def start(job: Job) -> None:
            job.status = JobStatus.RUNNING
            job.start_time = now_ms()

        self.update(job_id, start)
        logger.info("job_started", job_id=job_id)
        try:
            summary = self.orchestrator.run(config, JobObserver(self, job_id))
        except Exception as exc:
            error = str(exc)

            def fail(job: Job) -> None:
                job.status = JobStatus.FAILED
                job.error = error
                job.end_time = now_ms()

            self.update(job_id, fail)
            logger.error("job_failed", job_id=job_id, error=error)
            return

        def complete(job: Job) -> None:
            job.status = JobStatus.COMPLETED
            job.summary = summary
            job.completed = summary.total
            job.total = summary.total
            job.transactions = list(summary.results)
            job.failures = list(summary.failures)
            job.end_time = now_ms()

        self.update(job_id, complete)
        logger.info(
            "job_completed",
            job_id=job_id,
            successful=summary.successful,
            failed=summary.failed,
        )

    def update(self, job_id: str, apply: Callable[[Job], Any]) -> None:
        """Apply `apply` to the live job under the lock; no-op once deleted."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                logger.debug("job_update_dropped", job_id=job_id)
                return
            apply(job)

    def get(self, job_id: str) -> Job | None:
        """Snapshot of a job, safe to read outside the lock."""
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job is not None else None

    def list_jobs(self) -> list[Job]:
        """Snapshots of every job, oldest first."""
        with self._lock:
            jobs = [job.model_copy(deep=True) for job in self._jobs.values()]
        return sorted(jobs, key=lambda job: job.created_at)

    def delete(self, job_id: str) -> bool:
        """Remove a job record. Returns False when the id is unknown."""
        with self._lock:
            removed = self._jobs.pop(job_id, None)
            self._futures.pop(job_id, None)
        if removed is not None:
            logger.info("job_deleted", job_id=job_id, status=removed.status.value)
        return removed is not None

    def wait(self, job_id: str, timeout: float | None = None) -> Job | None:
        """Block until the job's run finishes, then return its snapshot."""
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            try:
                future.result(timeout=timeout)
            except FutureTimeoutError:
                logger.warning("job_wait_timed_out", job_id=job_id, timeout=timeout)
        return self.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and optionally wait for running jobs."""
        self._executor.shutdown(wait=wait)
        logger.info("job_registry_shutdown", jobs=len(self))
