from fastapi import APIRouter

from txbatch.api.deps import RegistryDep
from txbatch.models.job import now_ms

router = APIRouter(tags=["Health"])


@router.get("/health")
def health(registry: RegistryDep) -> dict[str, object]:
    return {"status": "ok", "timestamp": now_ms(), "activeJobs": len(registry)}
