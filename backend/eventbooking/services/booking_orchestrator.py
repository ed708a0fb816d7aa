"""
Booking workflow: one ticket request in, one committed booking out.

    1. rate limit          (outside the transaction, fails fast)
    2. validate input      (ticket count, location fix)
    3. resolve user
    4. reserve seats       ┐ one transaction: commit together
    5. record booking      ┘ or roll back together
    6. resolve place name  (after commit, never holds a transaction)
    7. return the summary

A failure anywhere in 1-5 leaves no trace: nothing is written before the
admission check passes, and any exception between the seat decrement and
the commit rolls the decrement back with it.
"""

import time

from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import (
    BookingEngineError,
    ConflictError,
    InvalidTicketCountError,
    MissingLocationError,
    RateLimitExceededError,
    UserNotFoundError,
)
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import booking_latency, record_booking_attempt
from eventbooking.models.user import User
from eventbooking.schemas.booking import BookingCreate, BookingSummary
from eventbooking.services import booking_service, inventory_service
from eventbooking.services.booking_service import Provenance
from eventbooking.services.interfaces.admission import AdmissionStrategy
from eventbooking.services.location_service import LocationResolver

logger = get_logger(__name__)


async def book_tickets(
    db: AsyncSession,
    *,
    user_id: int,
    request: BookingCreate,
    client_address: str | None,
    admission: AdmissionStrategy,
    location_resolver: LocationResolver,
) -> BookingSummary:
    try:
        admission.admit(str(user_id))
    except RateLimitExceededError:
        record_booking_attempt("rejected")
        raise

    if request.tickets <= 0:
        record_booking_attempt("rejected")
        raise InvalidTicketCountError()
    if request.latitude is None or request.longitude is None:
        record_booking_attempt("rejected")
        raise MissingLocationError()

    provenance = Provenance(
        client_address=client_address,
        latitude=request.latitude,
        longitude=request.longitude,
    )

    started = time.perf_counter()
    try:
        user = await db.get(User, user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError()

        event = await inventory_service.reserve(db, request.event_id, request.tickets)
        booking = await booking_service.record_booking(db, user_id, event, request.tickets, provenance)
        await db.commit()
    except ConflictError:
        await db.rollback()
        record_booking_attempt("conflict")
        raise
    except BookingEngineError:
        await db.rollback()
        record_booking_attempt("rejected")
        raise
    except Exception:
        await db.rollback()
        record_booking_attempt("error")
        logger.exception("booking_transaction_failed", user_id=user_id, event_id=request.event_id)
        raise
    booking_latency.observe(time.perf_counter() - started)
    record_booking_attempt("success")

    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        event_id=event.id,
        tickets=request.tickets,
        available=event.available_seats,
    )

    summary = booking_service.to_summary(booking)

    try:
        place = await location_resolver.resolve(request.latitude, request.longitude)
        await booking_service.set_resolved_place(db, booking, place)
    except Exception as e:
        # The booking is committed; a missing place name is not worth failing it
        await db.rollback()
        logger.warning("resolved_place_update_failed", booking_id=summary.booking_id, error=str(e))

    return summary
