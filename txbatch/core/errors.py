"""Exception taxonomy for batch execution."""

from __future__ import annotations


class TxBatchError(Exception):
    """Base exception for all txbatch errors."""


class SetupError(TxBatchError):
    """Bad RPC endpoint, malformed address or missing credential. Raised before any send."""


class PlanningError(TxBatchError):
    """The planned batch cannot be funded or encoded. Raised before any send."""


class SubmissionError(TxBatchError):
    """A single transaction failed on every attempt of its retry budget."""

    def __init__(self, attempts: int, message: str) -> None:
        self.attempts = attempts
        self.message = message
        super().__init__(f"Failed after {attempts} attempt(s): {message}")


class BatchAbortedError(TxBatchError):
    """A token-transfer batch stopped because one item exhausted its retries."""

    def __init__(self, index: int, cause: SubmissionError) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"Max retries reached for tx #{index}: {cause.message}")
