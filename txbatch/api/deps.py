"""FastAPI dependencies: app-owned services and API key checks."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from txbatch.models.config import Settings
from txbatch.services.interaction import InteractionService
from txbatch.services.job_registry import JobRegistry

UNAUTHORIZED = "Unauthorized: Invalid or missing API key"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_registry(request: Request) -> JobRegistry:
    return request.app.state.registry


def get_interaction(request: Request) -> InteractionService:
    return request.app.state.interaction


SettingsDep = Annotated[Settings, Depends(get_settings)]
RegistryDep = Annotated[JobRegistry, Depends(get_registry)]
InteractionDep = Annotated[InteractionService, Depends(get_interaction)]


def _check_key(provided: str | None, expected: str | None, name: str) -> None:
    if not expected:
        raise HTTPException(status_code=500, detail=f"{name} not configured on server")
    if not provided or not secrets.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail=UNAUTHORIZED)


def require_api_key(
    settings: SettingsDep,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Gate for job endpoints and wallet generation."""
    _check_key(x_api_key, settings.api_key, "API_KEY")


def require_private_api_key(
    settings: SettingsDep,
    x_api_key: Annotated[str | None, Header()] = None,
) -> None:
    """Gate for endpoints that sign with the server's own key."""
    _check_key(x_api_key, settings.private_api_key, "PRIVATE_API_KEY")
