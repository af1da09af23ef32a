"""User profile routes."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, DBDep, StoreDep
from app.core.logging import get_logger
from app.schemas.user import UserProfileCreate, UserResponse, UserUpdate

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["users"])


@router.post("/me", response_model=UserResponse)
async def sync_current_user(
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
    profile: UserProfileCreate | None = None,
) -> UserResponse:
    """Get the signed-in user's profile, creating it on first sign-in."""
    return await store.get_or_create_user(db, user_id, profile)


@router.patch("/me", response_model=UserResponse)
async def update_current_user(
    data: UserUpdate,
    user_id: CurrentUser,
    db: DBDep,
    store: StoreDep,
) -> UserResponse:
    """Update profile fields and learning preferences."""
    user = await store.update_user(db, user_id, data)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user
