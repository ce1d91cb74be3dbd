"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI

import txbatch
from txbatch.api.errors import register_exception_handlers
from txbatch.api.routes import (
    batch_router,
    health_router,
    interact_jobs_router,
    interact_private_router,
)
from txbatch.models.config import Settings
from txbatch.services.interaction import InteractionService
from txbatch.services.job_registry import JobRegistry
from txbatch.services.nonce_allocator import NonceAllocator
from txbatch.services.orchestrator import BatchOrchestrator

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = structlog.get_logger(__name__)


def build_registry(settings: Settings) -> JobRegistry:
    """Job registry wired with an orchestrator sharing one nonce allocator."""
    orchestrator = BatchOrchestrator(
        nonce_allocator=NonceAllocator(settings.nonce_lease_ttl_seconds),
        receipt_timeout=settings.receipt_timeout_seconds,
    )
    return JobRegistry(orchestrator, max_workers=settings.max_concurrent_jobs)


def create_app(
    settings: Settings | None = None,
    registry: JobRegistry | None = None,
    interaction: InteractionService | None = None,
) -> FastAPI:
    """Build the API. Services are created from settings unless injected."""
    settings = settings or Settings()
    if registry is None:
        registry = build_registry(settings)
    if interaction is None:
        interaction = InteractionService(receipt_timeout=settings.receipt_timeout_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("server_started", host=settings.host, port=settings.port)
        yield
        registry.shutdown(wait=False)
        registry.orchestrator.nonce_allocator.close()

    app = FastAPI(title="txbatch", version=txbatch.__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.interaction = interaction

    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(batch_router)
    app.include_router(interact_private_router)
    app.include_router(interact_jobs_router)
    return app
