"""
Account registration and credential checks.
"""

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from eventbooking.models.user import User, UserRole
from eventbooking.schemas.user import UserCreate, UserLogin
from eventbooking.core.security import hash_password, verify_password, create_access_token
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)


async def _find_clash(db: AsyncSession, email: str, username: str) -> str | None:
    """Name the field an existing account already holds, if any."""
    rows = await db.execute(
        select(User.email, User.username).where(or_(User.email == email, User.username == username))
    )
    for existing_email, existing_username in rows:
        if existing_email == email:
            return "email"
        if existing_username == username:
            return "username"
    return None


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Create an account. Self-registration only ever yields the USER role;
    admins are provisioned directly in the database.
    """
    clash = await _find_clash(db, user_data.email, user_data.username)
    if clash is not None:
        logger.warning("registration_rejected", clash=clash)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered" if clash == "email" else "Username already taken",
        )

    account = User(
        email=user_data.email,
        username=user_data.username,
        name=user_data.name,
        hashed_password=hash_password(user_data.password),
        role=UserRole.USER.value,
        is_active=True,
    )
    db.add(account)
    await db.commit()

    logger.info("account_created", user_id=account.id)
    return account


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """Exchange email and password for a bearer token; 401 on any mismatch."""
    account = (
        await db.execute(select(User).where(User.email == login_data.email))
    ).scalar_one_or_none()

    if account is None or not account.is_active or not verify_password(login_data.password, account.hashed_password):
        logger.warning("credentials_rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    logger.info("token_issued", user_id=account.id, role=account.role)
    return issue_token(account)
