"""Pydantic schemas."""

from app.schemas.course import ChapterContentRequest, DetailedChapter, DetailedCourseResponse
from app.schemas.generation import KeyPoolStatusResponse, KeyStatusResponse
from app.schemas.history import (
    ChapterProgress,
    ChapterProgressUpdate,
    HistoryCreate,
    HistoryResponse,
)
from app.schemas.roadmap import (
    Chapter,
    ChapterCompletionUpdate,
    RoadmapGenerateRequest,
    RoadmapResponse,
    RoadmapSkeleton,
)
from app.schemas.user import LearningPreferences, UserProfileCreate, UserResponse, UserUpdate

__all__ = [
    "Chapter",
    "ChapterCompletionUpdate",
    "RoadmapGenerateRequest",
    "RoadmapResponse",
    "RoadmapSkeleton",
    "DetailedChapter",
    "DetailedCourseResponse",
    "ChapterContentRequest",
    "ChapterProgress",
    "ChapterProgressUpdate",
    "HistoryCreate",
    "HistoryResponse",
    "LearningPreferences",
    "UserProfileCreate",
    "UserResponse",
    "UserUpdate",
    "KeyPoolStatusResponse",
    "KeyStatusResponse",
]
