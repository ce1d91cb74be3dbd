"""Error rendering for the HTTP API: every error body is {"error": message}."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from txbatch.utils.validators import format_validation_errors

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fastapi import FastAPI

logger = structlog.get_logger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = format_validation_errors(exc.errors())
    logger.info("request_rejected", path=request.url.path, error=message)
    return JSONResponse(status_code=400, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)


@contextmanager
def internal_errors(operation: str) -> Iterator[None]:
    """Turn unexpected handler failures into 500 responses."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as exc:
        logger.error("request_failed", operation=operation, error=str(exc))
        raise HTTPException(status_code=500, detail=str(exc)) from exc
