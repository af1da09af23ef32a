"""Roadmap service for CRUD operations and chapter completion."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.roadmap import Roadmap
from app.schemas.roadmap import RoadmapSkeleton

logger = get_logger(__name__)


async def save_roadmap(
    db: AsyncSession,
    *,
    user_id: int,
    roadmap_id: str,
    skeleton: RoadmapSkeleton,
) -> Roadmap:
    """Insert a generated roadmap.

    A second insert of the same (user_id, roadmap_id) pair fails with
    ``sqlalchemy.exc.IntegrityError`` from the unique constraint.

    Note: This function assumes the caller will commit the transaction
    (e.g., via get_db_session context manager).
    """
    roadmap = Roadmap(
        user_id=user_id,
        roadmap_id=roadmap_id,
        subject=skeleton.subject,
        difficulty=skeleton.difficulty,
        description=skeleton.description,
        total_duration=skeleton.total_duration,
        estimated_hours=skeleton.estimated_hours,
        prerequisites=list(skeleton.prerequisites),
        learning_outcomes=list(skeleton.learning_outcomes),
        chapters=[c.model_dump(by_alias=True) for c in skeleton.chapters],
    )
    db.add(roadmap)
    await db.flush()

    logger.info(
        "Roadmap saved",
        roadmap_id=roadmap_id,
        user_id=user_id,
        chapters=len(roadmap.chapters),
    )
    return roadmap


async def get_roadmap(
    db: AsyncSession,
    user_id: int,
    roadmap_id: str,
) -> Roadmap | None:
    """Get one of a user's roadmaps by its roadmap id."""
    result = await db.execute(
        select(Roadmap).where(
            Roadmap.user_id == user_id,
            Roadmap.roadmap_id == roadmap_id,
        )
    )
    return result.scalar_one_or_none()


async def list_user_roadmaps(db: AsyncSession, user_id: int) -> list[Roadmap]:
    """List a user's roadmaps, newest first."""
    result = await db.execute(
        select(Roadmap)
        .where(Roadmap.user_id == user_id)
        .order_by(Roadmap.created_at.desc(), Roadmap.id.desc())
    )
    return list(result.scalars().all())


async def set_chapter_completed(
    db: AsyncSession,
    *,
    user_id: int,
    roadmap_id: str,
    chapter_id: str,
    completed: bool,
) -> Roadmap | None:
    """Set the completion flag of one chapter; every other field stays as is.

    Returns:
        Updated roadmap, or None if the roadmap does not exist

    Raises:
        ValueError: If the roadmap has no chapter with this id
    """
    roadmap = await get_roadmap(db, user_id, roadmap_id)
    if not roadmap:
        return None

    if not any(c.get("id") == chapter_id for c in roadmap.chapters):
        raise ValueError(f"Chapter {chapter_id} not found in roadmap {roadmap_id}")

    # Assign a new list so the JSON column is flagged as modified
    roadmap.chapters = [
        {**c, "completed": completed} if c.get("id") == chapter_id else c
        for c in roadmap.chapters
    ]
    await db.flush()

    logger.info(
        "Chapter completion updated",
        roadmap_id=roadmap_id,
        chapter_id=chapter_id,
        completed=completed,
    )
    return roadmap
