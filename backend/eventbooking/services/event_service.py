"""
Event catalog and lifecycle: create, read, search, update, retire.
"""

import math

from sqlalchemy import select, func, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.core.exceptions import BadRequestError, EventAlreadyRetiredError, EventNotFoundError
from eventbooking.core.logging import get_logger
from eventbooking.db.base import as_utc, utcnow
from eventbooking.models.event import Event
from eventbooking.schemas.event import EventCreate, EventUpdate
from eventbooking.services.cancellation_service import cancel_active_bookings
from eventbooking.services.inventory_service import load_event

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create a new event with full seat availability."""
    event_date = as_utc(event_data.date)
    if event_date <= utcnow():
        raise BadRequestError("Event date must be in the future")

    duplicate = await db.execute(
        select(Event.id).where(
            Event.title == event_data.title,
            Event.date == event_date,
            Event.location == event_data.location,
        )
    )
    if duplicate.first() is not None:
        raise BadRequestError("An event with the same title, date, and location already exists.")

    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_date,
        location=event_data.location,
        category=event_data.category,
        price=event_data.price,
        capacity=event_data.capacity,
        available_seats=event_data.capacity,  # All seats available initially
        is_active=True,
        version=1,
    )
    db.add(event)
    await db.commit()

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.capacity)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single active event by ID. Retired events read as not found."""
    event = await load_event(db, event_id)
    if event is None or not event.is_active:
        raise EventNotFoundError(event_id)
    return event


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate) -> Event:
    """Partial update of descriptive fields. Seats and version are not touched here."""
    event = await get_event(db, event_id)

    changes = event_data.model_dump(exclude_unset=True, exclude_none=True)
    if "date" in changes:
        changes["date"] = as_utc(changes["date"])
        if changes["date"] <= utcnow():
            raise BadRequestError("Event date must be in the future")

    for field, value in changes.items():
        setattr(event, field, value)
    await db.commit()

    logger.info("event_updated", event_id=event_id, fields=sorted(changes))
    return event


async def retire_event(db: AsyncSession, event_id: int) -> int:
    """
    Soft-delete an event and, if it has not happened yet, cancel its bookings.

    Flag flip and cascade share one transaction. The flip is a conditional
    UPDATE that also bumps the version, so a reservation that read the
    event before retirement fails its CAS instead of slipping in.
    Returns the number of bookings cancelled.
    """
    event = await load_event(db, event_id)
    if event is None:
        raise EventNotFoundError(event_id)

    try:
        flipped = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.is_active.is_(True))
            .values(is_active=False, version=Event.version + 1)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount == 0:
            raise EventAlreadyRetiredError(event_id)

        cancelled = 0
        if as_utc(event.date) > utcnow():
            cancelled = await cancel_active_bookings(db, event_id)
            logger.info("event_retired", event_id=event_id, cancelled_bookings=cancelled)
        else:
            logger.info("event_retired", event_id=event_id, reason="past_event_bookings_kept")
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return cancelled


async def repair_cancellations(db: AsyncSession, event_id: int) -> int:
    """
    Re-run the cascade for a retired event. Idempotent.
    Past events are left alone, same as retirement.
    """
    event = await load_event(db, event_id)
    if event is None:
        raise EventNotFoundError(event_id)
    if event.is_active:
        raise BadRequestError("Event is still active")
    if as_utc(event.date) <= utcnow():
        return 0

    try:
        cancelled = await cancel_active_bookings(db, event_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return cancelled


def _keyword_filter(keyword: str):
    pattern = f"%{keyword.lower()}%"
    return or_(
        func.lower(Event.title).like(pattern),
        func.lower(Event.location).like(pattern),
        func.lower(Event.category).like(pattern),
    )


async def _paginate(db: AsyncSession, query, page: int, page_size: int) -> tuple[list[Event], int]:
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    return list(result.scalars().all()), total


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    keyword: str | None = None,
) -> tuple[list[Event], int]:
    """
    Active upcoming events, nearest first.
    Keyword matches title, location or category, case-insensitively.
    Uses the ix_events_active_date composite index.
    """
    query = select(Event).where(Event.is_active.is_(True), Event.date > utcnow())
    if keyword and keyword.strip():
        query = query.where(_keyword_filter(keyword.strip()))
    return await _paginate(db, query, page, page_size)


async def list_all_events(db: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[Event], int]:
    """Every event including retired and past ones (admin view)."""
    return await _paginate(db, select(Event), page, page_size)


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0
