"""
Profile endpoints for the authenticated user.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.security import get_current_user_id
from eventbooking.db.session import get_db
from eventbooking.schemas.user import ChangePasswordRequest, UpdateProfileRequest, UserResponse
from eventbooking.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UpdateProfileRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.update_profile(db, user_id, data)


@router.post("/change-password")
async def change_password(
    data: ChangePasswordRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await user_service.change_password(db, user_id, data)
    return {"message": "Password changed successfully"}
