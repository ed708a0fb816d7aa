"""
Cancellation cascade: bulk CONFIRMED -> CANCELLED for one event.

One conditional UPDATE flips every confirmed booking of the event and
returns the ticket counts it touched; those tickets go back to the event's
counter so capacity accounting stays exact. Running it again finds no
CONFIRMED rows and changes nothing, which makes it safe as a repair pass.

This module never commits; the caller owns the transaction.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_cancellations
from eventbooking.models.booking import Booking, BookingStatus
from eventbooking.services.inventory_service import release_seats

logger = get_logger(__name__)


async def cancel_active_bookings(db: AsyncSession, event_id: int) -> int:
    """Cancel all confirmed bookings of an event. Returns how many were cancelled."""
    result = await db.execute(
        update(Booking)
        .where(
            Booking.event_id == event_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        .values(status=BookingStatus.CANCELLED.value)
        .returning(Booking.ticket_count)
        .execution_options(synchronize_session=False)
    )
    ticket_counts = list(result.scalars().all())

    cancelled = len(ticket_counts)
    released = sum(ticket_counts)
    await release_seats(db, event_id, released)

    record_cancellations(cancelled)
    logger.info(
        "bookings_cancelled",
        event_id=event_id,
        cancelled=cancelled,
        seats_released=released,
    )
    return cancelled
