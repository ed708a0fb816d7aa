"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from eventbooking.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[a-zA-Z0-9_]+$")
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    password: str = Field(..., min_length=8, max_length=128)


class UserLogin(CamelModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: int
    email: str
    username: str
    name: Optional[str]
    role: str
    is_active: bool
    created_at: datetime


class UpdateProfileRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str


class Token(CamelModel):
    access_token: str
    token_type: str = "bearer"
