"""
Profile management for the authenticated user.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import BadRequestError, UserNotFoundError
from eventbooking.core.logging import get_logger
from eventbooking.core.security import hash_password, verify_password
from eventbooking.models.user import User
from eventbooking.schemas.user import ChangePasswordRequest, UpdateProfileRequest

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise UserNotFoundError()
    return user


async def update_profile(db: AsyncSession, user_id: int, data: UpdateProfileRequest) -> User:
    user = await get_user(db, user_id)

    if data.email != user.email:
        taken = await db.execute(select(User.id).where(User.email == data.email))
        if taken.first() is not None:
            raise BadRequestError("Email is already in use")

    user.name = data.name
    user.email = data.email
    await db.commit()

    logger.info("profile_updated", user_id=user_id)
    return user


async def change_password(db: AsyncSession, user_id: int, data: ChangePasswordRequest) -> None:
    user = await get_user(db, user_id)

    if not verify_password(data.current_password, user.hashed_password):
        raise BadRequestError("Current password is incorrect")
    if data.new_password != data.confirm_password:
        raise BadRequestError("New password and confirm password do not match")

    user.hashed_password = hash_password(data.new_password)
    await db.commit()

    logger.info("password_changed", user_id=user_id)
