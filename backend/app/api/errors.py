"""Mapping of domain errors to HTTP responses."""

import math

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.generation.errors import (
    CredentialsExhaustedError,
    GenerationError,
    NoCredentialsConfiguredError,
)
from app.services.learning_store import DuplicateRoadmapError

logger = get_logger(__name__)


async def _no_credentials_handler(request: Request, exc: NoCredentialsConfiguredError) -> JSONResponse:
    logger.error("Generation requested without API keys", path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


async def _credentials_exhausted_handler(
    request: Request, exc: CredentialsExhaustedError
) -> JSONResponse:
    retry_after = max(1, math.ceil(exc.retry_after))
    logger.warning("All API keys busy", path=request.url.path, retry_after=retry_after)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc), "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


async def _generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    logger.error("Generation request failed", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Generation request failed. Please try again."},
    )


async def _duplicate_roadmap_handler(request: Request, exc: DuplicateRoadmapError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "roadmap_id": exc.roadmap_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for errors that can escape any generation route.

    Starlette picks the handler of the most specific class in the MRO, so
    the two credential errors win over the ``GenerationError`` fallback.
    """
    app.add_exception_handler(NoCredentialsConfiguredError, _no_credentials_handler)
    app.add_exception_handler(CredentialsExhaustedError, _credentials_exhausted_handler)
    app.add_exception_handler(GenerationError, _generation_error_handler)
    app.add_exception_handler(DuplicateRoadmapError, _duplicate_roadmap_handler)
