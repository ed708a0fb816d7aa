from eventbooking.schemas.user import (
    UserCreate, UserResponse, UserLogin, Token, UpdateProfileRequest, ChangePasswordRequest,
)
from eventbooking.schemas.event import (
    EventCreate, EventUpdate, EventResponse, EventListResponse, CascadeResult,
)
from eventbooking.schemas.booking import BookingCreate, BookingSummary

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token", "UpdateProfileRequest", "ChangePasswordRequest",
    "EventCreate", "EventUpdate", "EventResponse", "EventListResponse", "CascadeResult",
    "BookingCreate", "BookingSummary",
]
