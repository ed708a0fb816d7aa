"""
Pydantic schemas for booking-related request/response validation.

Ticket count and coordinates are deliberately loose here: the booking
workflow owns those rules and reports them as 400 business errors.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from eventbooking.schemas.base import CamelModel


class BookingCreate(CamelModel):
    event_id: int
    tickets: int
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class BookingSummary(CamelModel):
    booking_id: int
    event_title: str
    event_date: datetime
    event_location: str
    tickets: int
    total_amount: Decimal
    status: str
    booking_date: datetime
