"""Pydantic data models for txbatch."""

from txbatch.models.batch_config import (
    BatchConfig,
    BatchMode,
    EthTransfer,
    EthTransferConfig,
    FailurePolicy,
    RawBatchConfig,
    RawTransaction,
    TokenTransferConfig,
)
from txbatch.models.config import Settings
from txbatch.models.job import Job, JobStatus, JobType
from txbatch.models.planned_item import PlannedItem
from txbatch.models.submission import FailureRecord, SentTransaction, SubmissionResult
from txbatch.models.summary import BatchRunSummary
from txbatch.models.tx_intent import GasBounds, TxIntent

__all__ = [
    "BatchConfig",
    "BatchMode",
    "BatchRunSummary",
    "EthTransfer",
    "EthTransferConfig",
    "FailurePolicy",
    "FailureRecord",
    "GasBounds",
    "Job",
    "JobStatus",
    "JobType",
    "PlannedItem",
    "RawBatchConfig",
    "RawTransaction",
    "SentTransaction",
    "Settings",
    "SubmissionResult",
    "TokenTransferConfig",
    "TxIntent",
]
