"""API routers."""

from txbatch.api.routes.batch import router as batch_router
from txbatch.api.routes.health import router as health_router
from txbatch.api.routes.interact import jobs_router as interact_jobs_router
from txbatch.api.routes.interact import private_router as interact_private_router

__all__ = [
    "batch_router",
    "health_router",
    "interact_jobs_router",
    "interact_private_router",
]
