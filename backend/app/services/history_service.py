"""Learning history service."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.history import LearningHistory
from app.schemas.history import HistoryCreate

logger = get_logger(__name__)


def apply_chapter_progress(
    progress: list[dict],
    chapter_id: str,
    completed: bool,
    now: datetime,
) -> list[dict]:
    """Return a copy of ``progress`` with one chapter entry set or appended."""
    entry = {
        "chapterId": chapter_id,
        "completed": completed,
        "completedAt": now.isoformat() if completed else None,
    }
    updated = []
    found = False
    for item in progress:
        if item.get("chapterId") == chapter_id:
            updated.append(entry)
            found = True
        else:
            updated.append(item)
    if not found:
        updated.append(entry)
    return updated


async def add_to_history(
    db: AsyncSession,
    *,
    user_id: int,
    data: HistoryCreate,
) -> LearningHistory:
    history = LearningHistory(
        user_id=user_id,
        roadmap_id=data.roadmap_id,
        subject=data.subject,
        difficulty=data.difficulty,
        chapter_progress=[
            cp.model_dump(by_alias=True, mode="json") for cp in data.chapter_progress
        ],
        learning_preferences=data.learning_preferences.model_dump(),
    )
    db.add(history)
    await db.flush()

    logger.info("History entry added", history_id=history.id, roadmap_id=data.roadmap_id)
    return history


async def get_user_history(db: AsyncSession, user_id: int) -> list[LearningHistory]:
    """List a user's history, most recently accessed first."""
    result = await db.execute(
        select(LearningHistory)
        .where(LearningHistory.user_id == user_id)
        .order_by(LearningHistory.last_accessed_at.desc(), LearningHistory.id.desc())
    )
    return list(result.scalars().all())


async def get_history_for_roadmap(
    db: AsyncSession,
    user_id: int,
    roadmap_id: str,
) -> LearningHistory | None:
    """Most recent history entry for a roadmap."""
    result = await db.execute(
        select(LearningHistory)
        .where(
            LearningHistory.user_id == user_id,
            LearningHistory.roadmap_id == roadmap_id,
        )
        .order_by(LearningHistory.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def update_chapter_progress(
    db: AsyncSession,
    *,
    user_id: int,
    history_id: int,
    chapter_id: str,
    completed: bool,
) -> LearningHistory | None:
    """Mark a chapter (in)complete in a history entry.

    Returns:
        Updated entry, or None if the user has no entry with this id
    """
    history = await db.get(LearningHistory, history_id)
    if not history or history.user_id != user_id:
        logger.warning("History entry not found", history_id=history_id, user_id=user_id)
        return None

    now = datetime.utcnow()
    history.chapter_progress = apply_chapter_progress(
        history.chapter_progress, chapter_id, completed, now
    )
    history.last_accessed_at = now
    await db.flush()

    logger.info(
        "Chapter progress updated",
        history_id=history_id,
        chapter_id=chapter_id,
        completed=completed,
    )
    return history
