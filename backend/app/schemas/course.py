"""Detailed course schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, computed_field

from app.schemas.roadmap import Chapter


class DetailedChapter(Chapter):
    """A roadmap chapter with its generated long-form content.

    ``content`` is the parsed chapter JSON, or None when generation or
    parsing failed for this chapter.
    """

    content: dict[str, Any] | None = None
    quiz: dict[str, Any] | None = None


class DetailedCourseResponse(BaseModel):
    roadmap_id: str
    title: str
    description: str
    chapters: list[DetailedChapter]
    generated_at: datetime

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def course_id(self) -> str:
        return f"detailed_{self.roadmap_id}"


class ChapterContentRequest(BaseModel):
    chapter_title: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    difficulty: str = "beginner"
