"""
Booking endpoints: rate-limited, concurrency-safe ticket reservation.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eventbooking.api.deps import get_admission, get_location_resolver
from eventbooking.db.session import get_db
from eventbooking.schemas.booking import BookingCreate, BookingSummary
from eventbooking.services import booking_service
from eventbooking.services.booking_orchestrator import book_tickets
from eventbooking.services.cache_service import invalidate_event_cache
from eventbooking.services.interfaces.admission import AdmissionStrategy
from eventbooking.services.location_service import LocationResolver, extract_client_ip
from eventbooking.core.security import get_current_user_id

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingSummary)
async def create_booking(
    booking_data: BookingCreate,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    admission: AdmissionStrategy = Depends(get_admission),
    location_resolver: LocationResolver = Depends(get_location_resolver),
):
    """
    Book tickets for an event.

    At most RATE_LIMIT_MAX_REQUESTS attempts per user per window (429 beyond).
    Seats are taken with a version-checked update; if concurrent bookings keep
    winning the race the request fails with 409 after BOOKING_MAX_RETRIES tries.
    """
    summary = await book_tickets(
        db,
        user_id=user_id,
        request=booking_data,
        client_address=extract_client_ip(request),
        admission=admission,
        location_resolver=location_resolver,
    )
    # available_seats changed, cached listings are stale
    await invalidate_event_cache()
    return summary


@router.get("/my-bookings", response_model=list[BookingSummary])
async def list_my_bookings(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """All bookings of the authenticated user."""
    bookings = await booking_service.get_user_bookings(db, user_id)
    return [booking_service.to_summary(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingSummary)
async def get_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """A single booking; 403 if it belongs to someone else."""
    booking = await booking_service.get_booking_for_user(db, booking_id, user_id)
    return booking_service.to_summary(booking)
