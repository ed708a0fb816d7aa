"""
Event endpoints. Reads are public and list responses are cached in Redis;
writes and retirement require the ADMIN role.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.db.session import get_db
from eventbooking.schemas.event import (
    CascadeResult, EventCreate, EventListResponse, EventResponse, EventUpdate,
)
from eventbooking.services import event_service
from eventbooking.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from eventbooking.core.security import require_admin
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _list_response(events, total: int, page: int, page_size: int) -> EventListResponse:
    return EventListResponse(
        events=[EventResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=event_service.total_pages(total, page_size),
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.create_event(db, event_data)
    await invalidate_event_cache()
    return event


@router.get("", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    keyword: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
):
    """
    Active upcoming events with pagination and keyword search.
    Results are cached in Redis; bookings and event writes invalidate them.
    """
    cached = await get_cached_events(page, page_size, keyword)
    if cached:
        logger.info("events_list_cache_hit", page=page)
        cached["cached"] = True
        return EventListResponse.model_validate(cached)

    events, total = await event_service.list_events(db, page, page_size, keyword)
    response = _list_response(events, total, page, page_size)

    await set_cached_events(page, page_size, keyword, response.model_dump(by_alias=True, mode="json"))
    return response


@router.get("/admin/all", response_model=EventListResponse)
async def list_all_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Every event including retired ones. Never cached."""
    events, total = await event_service.list_all_events(db, page, page_size)
    return _list_response(events, total, page, page_size)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Single event. Not cached (needs real-time seat counts)."""
    return await event_service.get_event(db, event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event = await event_service.update_event(db, event_id, event_data)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def retire_event_endpoint(
    event_id: int,
    admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete. Upcoming events get their confirmed bookings cancelled."""
    await event_service.retire_event(db, event_id)
    await invalidate_event_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{event_id}/cancel-bookings", response_model=CascadeResult)
async def repair_cancellations_endpoint(
    event_id: int,
    admin_id: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Re-run the cancellation cascade for a retired event. Safe to repeat."""
    cancelled = await event_service.repair_cancellations(db, event_id)
    return CascadeResult(event_id=event_id, cancelled_bookings=cancelled)
