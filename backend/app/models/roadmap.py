"""Roadmap and detailed course models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Roadmap(Base):
    __tablename__ = "roadmaps"
    __table_args__ = (UniqueConstraint("user_id", "roadmap_id", name="idx_roadmaps_user_roadmap"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    roadmap_id: Mapped[str] = mapped_column(String, index=True)

    subject: Mapped[str] = mapped_column(String)
    difficulty: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    total_duration: Mapped[str] = mapped_column(String)
    estimated_hours: Mapped[str] = mapped_column(String)
    prerequisites: Mapped[list[str]] = mapped_column(JSON, default=list)
    learning_outcomes: Mapped[list[str]] = mapped_column(JSON, default=list)
    chapters: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list)

    generated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class DetailedCourse(Base):
    """Per-chapter long-form content generated from a roadmap."""

    __tablename__ = "detailed_courses"
    __table_args__ = (
        UniqueConstraint("user_id", "roadmap_id", name="idx_detailed_courses_user_roadmap"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    roadmap_id: Mapped[str] = mapped_column(String, index=True)

    title: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    # roadmap chapter fields + "content" (dict or None) + "quiz"
    chapters: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list)

    generated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
