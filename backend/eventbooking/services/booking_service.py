"""
Booking ledger: durable booking records and their read views.

Bookings are appended, never edited on creation. Reads enforce ownership:
a booking is only visible to the user who made it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import BookingAccessDeniedError, BookingNotFoundError
from eventbooking.core.logging import get_logger
from eventbooking.models.booking import Booking, BookingStatus
from eventbooking.models.event import Event
from eventbooking.schemas.booking import BookingSummary

logger = get_logger(__name__)


@dataclass(frozen=True)
class Provenance:
    """Network and geographic context captured with a booking request."""

    client_address: Optional[str]
    latitude: Optional[float]
    longitude: Optional[float]


async def record_booking(
    db: AsyncSession,
    user_id: int,
    event: Event,
    ticket_count: int,
    provenance: Provenance,
) -> Booking:
    """Insert a CONFIRMED booking. Flushes for the id; the caller commits."""
    booking = Booking(
        user_id=user_id,
        event=event,
        ticket_count=ticket_count,
        unit_price=event.price,
        status=BookingStatus.CONFIRMED.value,
        client_address=provenance.client_address,
        latitude=provenance.latitude,
        longitude=provenance.longitude,
    )
    db.add(booking)
    await db.flush()
    return booking


async def set_resolved_place(db: AsyncSession, booking: Booking, place: str) -> None:
    booking.resolved_place = place[:255]
    await db.commit()


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """All bookings for a user, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.user_id == user_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())


async def get_booking_for_user(db: AsyncSession, booking_id: int, user_id: int) -> Booking:
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)

    if booking.user_id != user_id:
        logger.warning(
            "booking_access_denied",
            booking_id=booking_id,
            requested_by=user_id,
        )
        raise BookingAccessDeniedError()

    return booking


def to_summary(booking: Booking) -> BookingSummary:
    event = booking.event
    return BookingSummary(
        booking_id=booking.id,
        event_title=event.title,
        event_date=event.date,
        event_location=event.location,
        tickets=booking.ticket_count,
        total_amount=Decimal(booking.unit_price) * booking.ticket_count,
        status=booking.status,
        booking_date=booking.created_at,
    )
