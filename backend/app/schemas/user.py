"""User schemas."""

from datetime import datetime

from pydantic import BaseModel


class LearningPreferences(BaseModel):
    learning_style: str = "mixed"
    time_commitment: str = "regular"
    goals: list[str] = []


class UserProfileCreate(BaseModel):
    """Profile data sent on sign-in; used only when the user is new."""

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None


class UserUpdate(BaseModel):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None
    preferences: LearningPreferences | None = None


class UserResponse(BaseModel):
    external_id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    image_url: str | None
    preferences: LearningPreferences | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
