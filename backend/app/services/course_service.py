"""Detailed course service."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.roadmap import DetailedCourse
from app.schemas.course import DetailedCourseResponse

logger = get_logger(__name__)


async def get_detailed_course(
    db: AsyncSession,
    user_id: int,
    roadmap_id: str,
) -> DetailedCourse | None:
    result = await db.execute(
        select(DetailedCourse).where(
            DetailedCourse.user_id == user_id,
            DetailedCourse.roadmap_id == roadmap_id,
        )
    )
    return result.scalar_one_or_none()


async def save_detailed_course(
    db: AsyncSession,
    *,
    user_id: int,
    course: DetailedCourseResponse,
) -> DetailedCourse:
    """Store a generated course, replacing an earlier one for the same roadmap."""
    chapters = [c.model_dump(by_alias=True, mode="json") for c in course.chapters]

    record = await get_detailed_course(db, user_id, course.roadmap_id)
    if record:
        record.title = course.title
        record.description = course.description
        record.chapters = chapters
        record.generated_at = course.generated_at
        logger.info("Detailed course replaced", roadmap_id=course.roadmap_id, user_id=user_id)
    else:
        record = DetailedCourse(
            user_id=user_id,
            roadmap_id=course.roadmap_id,
            title=course.title,
            description=course.description,
            chapters=chapters,
            generated_at=course.generated_at,
        )
        db.add(record)
        logger.info("Detailed course saved", roadmap_id=course.roadmap_id, user_id=user_id)

    await db.flush()
    return record


async def list_user_detailed_courses(db: AsyncSession, user_id: int) -> list[DetailedCourse]:
    result = await db.execute(
        select(DetailedCourse)
        .where(DetailedCourse.user_id == user_id)
        .order_by(DetailedCourse.generated_at.desc())
    )
    return list(result.scalars().all())
