"""Database models."""

from app.models.history import LearningHistory
from app.models.roadmap import DetailedCourse, Roadmap
from app.models.user import User

__all__ = [
    "User",
    "Roadmap",
    "DetailedCourse",
    "LearningHistory",
]
