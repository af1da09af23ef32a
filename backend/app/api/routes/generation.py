"""Single-call generation routes and key pool status."""

from typing import Any

from fastapi import APIRouter, HTTPException, status

from app.api.deps import GenerationDep
from app.core.logging import get_logger
from app.schemas.course import ChapterContentRequest
from app.schemas.generation import KeyPoolStatusResponse
from app.services import generation_service

logger = get_logger(__name__)
router = APIRouter(prefix="/generation", tags=["generation"])


def _unparseable(e: ValueError) -> HTTPException:
    logger.error("Generated content could not be parsed", error=str(e))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Generated content could not be parsed. Please try again.",
    )


@router.post("/chapter-content")
async def generate_chapter_content(
    data: ChapterContentRequest,
    generation: GenerationDep,
) -> dict[str, Any]:
    """Generate lesson content for a single chapter."""
    try:
        return await generation_service.generate_course_content(
            generation, data.chapter_title, data.subject, data.difficulty
        )
    except ValueError as e:
        raise _unparseable(e) from e


@router.post("/quiz")
async def generate_quiz(
    data: ChapterContentRequest,
    generation: GenerationDep,
) -> dict[str, Any]:
    """Generate a multiple-choice quiz for a single chapter."""
    try:
        return await generation_service.generate_quiz(
            generation, data.chapter_title, data.subject, data.difficulty
        )
    except ValueError as e:
        raise _unparseable(e) from e


@router.get("/status", response_model=KeyPoolStatusResponse)
async def get_key_pool_status(generation: GenerationDep) -> KeyPoolStatusResponse:
    """Current availability of the API keys (secrets are never included)."""
    return KeyPoolStatusResponse.model_validate(generation.key_pool.status())
