"""Retry policy for transaction submission using tenacity."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
)

from txbatch.core.gas import BACKOFF_CAP_SECONDS, BACKOFF_STEP_SECONDS, backoff_seconds

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempt with structured context."""
    logger.warning(
        "retrying_submission",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep if retry_state.next_action else None,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else "unknown",
    )


def submission_retrying(
    max_attempts: int,
    step: float = BACKOFF_STEP_SECONDS,
    cap: float = BACKOFF_CAP_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> Retrying:
    """Build a tenacity controller for one transaction send.

    Any exception triggers a retry. The wait after failed attempt n is
    min(n * step, cap), and nothing is slept after the final attempt; the last
    exception is re-raised unchanged.
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=lambda state: backoff_seconds(state.attempt_number, step, cap),
        retry=retry_if_exception_type(Exception),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
