"""Roadmap API routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, DBDep, GenerationDep, StoreDep
from app.core.config import get_settings
from app.core.logging import get_logger
from app.generation.errors import RoadmapGenerationError
from app.schemas.history import ChapterProgress, HistoryCreate
from app.schemas.roadmap import ChapterCompletionUpdate, RoadmapGenerateRequest, RoadmapResponse
from app.schemas.user import LearningPreferences
from app.services import generation_service

logger = get_logger(__name__)
router = APIRouter(prefix="/roadmaps", tags=["roadmaps"])


@router.post("", response_model=RoadmapResponse, status_code=status.HTTP_201_CREATED)
async def generate_roadmap(
    data: RoadmapGenerateRequest,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
    generation: GenerationDep,
) -> RoadmapResponse:
    """Generate a roadmap, save it and start a history entry for it.

    A failed generation answers 502 with the attempt count; the client may
    retry with ``attempt + 1`` until ``max_attempts`` is reached.
    """
    max_attempts = get_settings().ROADMAP_MAX_ATTEMPTS
    if data.attempt > max_attempts:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Maximum of {max_attempts} attempts exceeded",
        )

    try:
        skeleton = await generation_service.generate_roadmap(
            generation, data.subject, data.difficulty
        )
    except RoadmapGenerationError as e:
        logger.warning(
            "Roadmap generation attempt failed",
            subject=data.subject,
            attempt=data.attempt,
            max_attempts=max_attempts,
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(e),
                "attempt": data.attempt,
                "max_attempts": max_attempts,
                "retryable": data.attempt < max_attempts,
            },
        ) from e

    roadmap = await store.save_roadmap(
        db, user_id, generation_service.new_roadmap_id(), skeleton
    )
    await store.add_to_history(
        db,
        user_id,
        HistoryCreate(
            subject=roadmap.subject,
            difficulty=roadmap.difficulty,
            roadmap_id=roadmap.roadmap_id,
            chapter_progress=[ChapterProgress(chapter_id=c.id) for c in roadmap.chapters],
            learning_preferences=data.learning_preferences or LearningPreferences(),
        ),
    )
    logger.info("Roadmap created", roadmap_id=roadmap.roadmap_id, user_id=user_id)
    return roadmap


@router.get("", response_model=list[RoadmapResponse])
async def list_roadmaps(
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> list[RoadmapResponse]:
    """List the user's roadmaps, newest first."""
    return await store.list_roadmaps(db, user_id)


@router.get("/{roadmap_id}", response_model=RoadmapResponse)
async def get_roadmap(
    roadmap_id: str,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> RoadmapResponse:
    roadmap = await store.get_roadmap(db, user_id, roadmap_id)
    if not roadmap:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Roadmap not found",
        )
    return roadmap


@router.patch("/{roadmap_id}/chapters/{chapter_id}", response_model=RoadmapResponse)
async def update_chapter_completion(
    roadmap_id: str,
    chapter_id: str,
    data: ChapterCompletionUpdate,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> RoadmapResponse:
    """Mark a chapter (in)complete; the roadmap's history entry follows."""
    try:
        roadmap = await store.set_chapter_completed(
            db, user_id, roadmap_id, chapter_id, data.completed
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    if not roadmap:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Roadmap not found",
        )
    return roadmap
