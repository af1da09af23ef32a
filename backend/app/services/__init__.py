"""Service layer modules."""

from app.services import (
    course_service,
    generation_service,
    history_service,
    learning_store,
    local_store,
    roadmap_service,
    user_service,
)

__all__ = [
    "course_service",
    "generation_service",
    "history_service",
    "learning_store",
    "local_store",
    "roadmap_service",
    "user_service",
]
