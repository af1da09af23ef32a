"""User service for profile operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.user import User
from app.schemas.user import UserProfileCreate, UserUpdate

logger = get_logger(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    external_id: str,
    profile: UserProfileCreate | None = None,
) -> User:
    """Get the user for an identity-provider id, creating it on first sight.

    The profile is only applied when the user is created.

    Note: This function assumes the caller will commit the transaction
    (e.g., via get_db_session context manager).
    """
    user = await get_user_by_external_id(db, external_id)
    if user:
        return user

    profile = profile or UserProfileCreate()
    user = User(
        external_id=external_id,
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        image_url=profile.image_url,
    )
    db.add(user)
    await db.flush()

    logger.info("User created", user_id=user.id, external_id=external_id)
    return user


async def update_user(
    db: AsyncSession,
    external_id: str,
    data: UserUpdate,
) -> User | None:
    """Apply the fields set in ``data`` to a user.

    Returns:
        Updated user, or None if no user has this external id
    """
    user = await get_user_by_external_id(db, external_id)
    if not user:
        logger.warning("User not found for update", external_id=external_id)
        return None

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()

    logger.info("User updated", user_id=user.id, fields=sorted(changes))
    return user
