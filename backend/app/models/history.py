"""Learning history model."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class LearningHistory(Base):
    """One row per roadmap a user started (append-only)."""

    __tablename__ = "learning_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    roadmap_id: Mapped[str] = mapped_column(String)

    subject: Mapped[str] = mapped_column(String)
    difficulty: Mapped[str] = mapped_column(String)

    # [{"chapterId": str, "completed": bool, "completedAt": iso str | None}]
    chapter_progress: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list)
    learning_preferences: Mapped[dict] = mapped_column(JSON, default=dict)

    started_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
