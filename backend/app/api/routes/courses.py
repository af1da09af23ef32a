"""Detailed course routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, DBDep, GenerationDep, StoreDep
from app.core.logging import get_logger
from app.schemas.course import DetailedCourseResponse
from app.services import generation_service

logger = get_logger(__name__)
router = APIRouter(tags=["courses"])


@router.post(
    "/roadmaps/{roadmap_id}/course",
    response_model=DetailedCourseResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_detailed_course(
    roadmap_id: str,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
    generation: GenerationDep,
) -> DetailedCourseResponse:
    """Generate and save content for every chapter of a roadmap.

    Use the WebSocket route to follow progress; this one only returns when
    the whole course is done.
    """
    roadmap = await store.get_roadmap(db, user_id, roadmap_id)
    if not roadmap:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Roadmap not found",
        )

    course = await generation_service.generate_detailed_course(generation, roadmap)
    return await store.save_detailed_course(db, user_id, course)


@router.get("/roadmaps/{roadmap_id}/course", response_model=DetailedCourseResponse)
async def get_detailed_course(
    roadmap_id: str,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> DetailedCourseResponse:
    course = await store.get_detailed_course(db, user_id, roadmap_id)
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Detailed course not found",
        )
    return course


@router.get("/courses", response_model=list[DetailedCourseResponse])
async def list_detailed_courses(
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> list[DetailedCourseResponse]:
    return await store.list_detailed_courses(db, user_id)
