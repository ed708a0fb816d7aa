"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from eventbooking.schemas.base import CamelModel


class EventCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    capacity: int = Field(..., gt=0, le=100000)


class EventUpdate(CamelModel):
    """Partial update. Capacity is fixed at creation."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)


class EventResponse(CamelModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    location: str
    category: str
    price: Decimal
    capacity: int
    available_seats: int
    is_active: bool
    created_at: datetime


class EventListResponse(CamelModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    cached: bool = False


class CascadeResult(CamelModel):
    event_id: int
    cancelled_bookings: int
