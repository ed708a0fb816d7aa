"""
Seat inventory with concurrency-safe decrements.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two users try to book the last seat simultaneously.
  Both read available_seats=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  Every change to an event's seat counter is a compare-and-swap on the
  `version` column:

  1. Read (available_seats, version) and validate the request against it
  2. UPDATE events SET available_seats = available_seats - N, version = version + 1
     WHERE id = :event_id AND version = :read_version
       AND is_active AND available_seats >= N
  3. rows_affected == 0 means another writer got there first: re-read fresh
     state and try again, up to BOOKING_MAX_RETRIES attempts, then give up
     with a ConflictError (HTTP 409, "retry as-is")

  The retry is explicit rather than left to ORM version checking, so the
  policy is visible and testable. The DB CHECK constraints
  (0 <= available_seats <= capacity) are the final safety net.

  This module never commits. The caller owns the transaction, so the seat
  decrement and the booking row land together or not at all.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.config import get_settings
from eventbooking.core.exceptions import (
    ConflictError,
    EventNotFoundError,
    InsufficientInventoryError,
    PastEventError,
)
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_db_retry
from eventbooking.db.base import as_utc, utcnow
from eventbooking.models.event import Event

logger = get_logger(__name__)
settings = get_settings()


async def load_event(db: AsyncSession, event_id: int) -> Event | None:
    """Fresh read of an event row, overwriting any stale copy in the identity map."""
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def compare_and_swap_seats(
    db: AsyncSession,
    event_id: int,
    expected_version: int,
    ticket_count: int,
) -> bool:
    """Decrement seats only if nobody changed the row since we read it."""
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.version == expected_version,
            Event.is_active.is_(True),
            Event.available_seats >= ticket_count,
        )
        .values(
            available_seats=Event.available_seats - ticket_count,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def reserve(
    db: AsyncSession,
    event_id: int,
    ticket_count: int,
    *,
    max_attempts: int | None = None,
    now: datetime | None = None,
) -> Event:
    """
    Take `ticket_count` seats from an event.

    Returns the event re-read after the decrement (updated available_seats
    and version). Raises EventNotFoundError, PastEventError,
    InsufficientInventoryError, or ConflictError once retries run out.
    """
    attempts = max_attempts or settings.BOOKING_MAX_RETRIES
    now = now or utcnow()

    for attempt in range(1, attempts + 1):
        event = await load_event(db, event_id)

        if event is None or not event.is_active:
            raise EventNotFoundError(event_id)

        if as_utc(event.date) <= now:
            raise PastEventError()

        if event.available_seats < ticket_count:
            logger.warning(
                "reservation_failed_no_seats",
                event_id=event_id,
                requested=ticket_count,
                available=event.available_seats,
            )
            raise InsufficientInventoryError(requested=ticket_count, remaining=event.available_seats)

        if await compare_and_swap_seats(db, event_id, event.version, ticket_count):
            updated = await load_event(db, event_id)
            logger.info(
                "seats_reserved",
                event_id=event_id,
                seats=ticket_count,
                available=updated.available_seats,
                version=updated.version,
                attempt=attempt,
            )
            return updated

        record_db_retry()
        logger.info(
            "inventory_version_conflict",
            event_id=event_id,
            attempt=attempt,
            read_version=event.version,
        )

    logger.warning("reservation_conflict_exhausted", event_id=event_id, attempts=attempts)
    raise ConflictError()


async def release_seats(db: AsyncSession, event_id: int, count: int) -> None:
    """
    Return seats to an event's counter.

    A single atomic increment: no read-modify-write in Python, so no CAS
    is needed. The version still moves so concurrent reservers re-read.
    """
    if count <= 0:
        return
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(
            available_seats=Event.available_seats + count,
            version=Event.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    logger.info("seats_released", event_id=event_id, seats=count)
