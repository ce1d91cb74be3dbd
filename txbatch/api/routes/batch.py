"""Token batch jobs and job status endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException

from txbatch.api.deps import RegistryDep, SettingsDep, require_api_key
from txbatch.api.errors import internal_errors
from txbatch.api.schemas import build_config
from txbatch.models.batch_config import TokenTransferConfig
from txbatch.models.job import JobType

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/batch", tags=["Batch"], dependencies=[Depends(require_api_key)])

JOB_NOT_FOUND = "Job not found"


def queued_response(job_id: str, message: str, **extra: Any) -> dict[str, Any]:
    """Body returned by every job-starting endpoint."""
    return {
        "jobId": job_id,
        "status": "queued",
        "message": message,
        **extra,
        "statusUrl": f"/batch/{job_id}",
    }


@router.post("")
def start_batch(
    registry: RegistryDep,
    settings: SettingsDep,
    body: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """Queue an ERC20 transfer batch signed with the server's key."""
    config = build_config(TokenTransferConfig, body, settings, use_server_key=True)
    with internal_errors("start_batch"):
        job_id = registry.create(config, JobType.BATCH)
    return queued_response(job_id, "Batch transaction started")


@router.get("/{job_id}")
def get_job(job_id: str, registry: RegistryDep) -> dict[str, Any]:
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return job.to_view()


@router.get("")
def list_jobs(registry: RegistryDep) -> dict[str, Any]:
    jobs = [job.to_listing() for job in registry.list_jobs()]
    return {"jobs": jobs, "total": len(jobs)}


@router.delete("/{job_id}")
def delete_job(job_id: str, registry: RegistryDep) -> dict[str, str]:
    """Forget a job. A running job keeps executing; only its record goes away."""
    if not registry.delete(job_id):
        raise HTTPException(status_code=404, detail=JOB_NOT_FOUND)
    return {"message": "Job deleted"}
