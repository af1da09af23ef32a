"""Learning history schemas."""

from datetime import datetime

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.user import LearningPreferences


class ChapterProgress(BaseModel):
    chapter_id: str
    completed: bool = False
    completed_at: datetime | None = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class HistoryCreate(BaseModel):
    subject: str
    difficulty: str
    roadmap_id: str
    chapter_progress: list[ChapterProgress]
    learning_preferences: LearningPreferences


class ChapterProgressUpdate(BaseModel):
    completed: bool


class HistoryResponse(BaseModel):
    # row id from the backend, "history_<ms>" for locally stored entries
    id: str
    roadmap_id: str
    subject: str
    difficulty: str
    chapter_progress: list[ChapterProgress]
    learning_preferences: LearningPreferences
    started_at: datetime
    last_accessed_at: datetime

    class Config:
        from_attributes = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v
