"""Roadmap schemas for API requests and responses."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from app.schemas.user import LearningPreferences


class Chapter(BaseModel):
    """A chapter in a generated roadmap.

    The model emits and stores chapters in camelCase (``keyTopics``,
    ``estimatedHours``); both spellings are accepted on input.
    """

    id: str
    title: str
    description: str = ""
    duration: str = ""
    estimated_hours: str = ""
    difficulty: str = ""
    position: str = "left"  # "left" | "right"
    completed: bool = False
    key_topics: list[str] = []
    skills: list[str] = []
    practical_projects: list[str] = []
    resources: int = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: object) -> object:
        return str(v) if isinstance(v, int) else v


class RoadmapSkeleton(BaseModel):
    """Roadmap structure as returned by the structure-generation call."""

    subject: str
    difficulty: str
    description: str = ""
    total_duration: str = ""
    estimated_hours: str = ""
    prerequisites: list[str] = []
    learning_outcomes: list[str] = []
    chapters: list[Chapter]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class RoadmapGenerateRequest(BaseModel):
    """Generate a new roadmap."""

    subject: str = Field(min_length=1)
    difficulty: str = Field(min_length=1)
    # 1-based; the client bumps it on each retry after a failure
    attempt: int = Field(default=1, ge=1)
    learning_preferences: LearningPreferences | None = None


class ChapterCompletionUpdate(BaseModel):
    completed: bool = True


class RoadmapResponse(BaseModel):
    """Roadmap response."""

    roadmap_id: str
    subject: str
    difficulty: str
    description: str
    total_duration: str
    estimated_hours: str
    prerequisites: list[str]
    learning_outcomes: list[str]
    chapters: list[Chapter]
    generated_at: datetime

    class Config:
        from_attributes = True

    @computed_field  # type: ignore[prop-decorator]
    @property
    def progress(self) -> float:
        """Percentage of chapters completed."""
        if not self.chapters:
            return 0.0
        completed = sum(1 for c in self.chapters if c.completed)
        return completed / len(self.chapters) * 100
