"""
Tests for event retirement and the booking cancellation cascade.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import booking_payload
from eventbooking.core.exceptions import EventAlreadyRetiredError
from eventbooking.models.booking import Booking, BookingStatus
from eventbooking.models.event import Event
from eventbooking.services import event_service
from eventbooking.services.cancellation_service import cancel_active_bookings


async def _statuses(session_factory, event_id: int) -> dict[int, str]:
    async with session_factory() as session:
        result = await session.execute(select(Booking).where(Booking.event_id == event_id))
        return {b.id: b.status for b in result.scalars().all()}


async def _event_row(session_factory, event_id: int) -> Event:
    async with session_factory() as session:
        return await session.get(Event, event_id)


def _direct_booking(user_id: int, event: Event, tickets: int, status: BookingStatus = BookingStatus.CONFIRMED):
    return Booking(
        user_id=user_id,
        event_id=event.id,
        ticket_count=tickets,
        unit_price=Decimal("25.00"),
        status=status.value,
    )


@pytest.mark.asyncio
async def test_retire_upcoming_event_cancels_bookings(
    client: AsyncClient, auth_headers, other_headers, admin_headers, test_event, session_factory
):
    for tickets in (3, 2):
        await client.post("/api/v1/bookings", json=booking_payload(test_event.id, tickets=tickets), headers=auth_headers)
    await client.post("/api/v1/bookings", json=booking_payload(test_event.id), headers=other_headers)

    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)
    assert response.status_code == 204

    statuses = await _statuses(session_factory, test_event.id)
    assert len(statuses) == 3
    assert set(statuses.values()) == {"CANCELLED"}

    mine = await client.get("/api/v1/bookings/my-bookings", headers=auth_headers)
    assert [b["status"] for b in mine.json()] == ["CANCELLED", "CANCELLED"]

    # Retired events disappear from public reads
    assert (await client.get(f"/api/v1/events/{test_event.id}")).status_code == 404

    event = await _event_row(session_factory, test_event.id)
    assert event.is_active is False
    assert event.available_seats == 100


@pytest.mark.asyncio
async def test_retire_twice_reports_already_retired(client: AsyncClient, admin_headers, test_event):
    first = await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)
    assert first.status_code == 204

    second = await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)
    assert second.status_code == 400
    assert second.json()["error"] == "ALREADY_RETIRED"
    assert second.json()["message"] == "Event is already deleted"


@pytest.mark.asyncio
async def test_retire_unknown_event(client: AsyncClient, admin_headers):
    response = await client.delete("/api/v1/events/99999", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_retire_requires_admin(client: AsyncClient, auth_headers, test_event):
    response = await client.delete(f"/api/v1/events/{test_event.id}", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_retire_past_event_keeps_bookings(db_session, session_factory, test_user, past_event):
    db_session.add_all([
        _direct_booking(test_user.id, past_event, 2),
        _direct_booking(test_user.id, past_event, 1),
    ])
    await db_session.commit()

    async with session_factory() as session:
        cancelled = await event_service.retire_event(session, past_event.id)

    assert cancelled == 0
    assert set((await _statuses(session_factory, past_event.id)).values()) == {"CONFIRMED"}
    event = await _event_row(session_factory, past_event.id)
    assert event.is_active is False
    assert event.available_seats == 50


@pytest.mark.asyncio
async def test_retire_skips_already_cancelled_bookings(db_session, session_factory, test_user, small_event):
    small_event.available_seats = 5
    db_session.add_all([
        _direct_booking(test_user.id, small_event, 3),
        _direct_booking(test_user.id, small_event, 2),
        _direct_booking(test_user.id, small_event, 4, BookingStatus.CANCELLED),
    ])
    await db_session.commit()

    async with session_factory() as session:
        cancelled = await event_service.retire_event(session, small_event.id)

    assert cancelled == 2
    event = await _event_row(session_factory, small_event.id)
    assert event.available_seats == 10


@pytest.mark.asyncio
async def test_already_retired_error_rolls_back(session_factory, test_event):
    async with session_factory() as session:
        await event_service.retire_event(session, test_event.id)

    async with session_factory() as session:
        with pytest.raises(EventAlreadyRetiredError):
            await event_service.retire_event(session, test_event.id)
        assert not session.in_transaction()


@pytest.mark.asyncio
async def test_cascade_is_idempotent(db_session, session_factory, test_user, small_event):
    small_event.available_seats = 7
    db_session.add(_direct_booking(test_user.id, small_event, 3))
    await db_session.commit()

    async with session_factory() as session:
        assert await cancel_active_bookings(session, small_event.id) == 1
        await session.commit()
    first = await _statuses(session_factory, small_event.id)

    async with session_factory() as session:
        assert await cancel_active_bookings(session, small_event.id) == 0
        await session.commit()

    assert await _statuses(session_factory, small_event.id) == first
    event = await _event_row(session_factory, small_event.id)
    assert event.available_seats == 10


@pytest.mark.asyncio
async def test_cascade_only_touches_target_event(db_session, session_factory, test_user, test_event, small_event):
    test_event.available_seats = 99
    small_event.available_seats = 9
    db_session.add_all([
        _direct_booking(test_user.id, test_event, 1),
        _direct_booking(test_user.id, small_event, 1),
    ])
    await db_session.commit()

    async with session_factory() as session:
        await cancel_active_bookings(session, test_event.id)
        await session.commit()

    assert set((await _statuses(session_factory, small_event.id)).values()) == {"CONFIRMED"}


@pytest.mark.asyncio
async def test_repair_endpoint_is_idempotent(
    client: AsyncClient, auth_headers, admin_headers, test_event, session_factory
):
    await client.post("/api/v1/bookings", json=booking_payload(test_event.id, tickets=2), headers=auth_headers)
    await client.delete(f"/api/v1/events/{test_event.id}", headers=admin_headers)
    after_retire = await _statuses(session_factory, test_event.id)

    for _ in range(2):
        response = await client.post(
            f"/api/v1/events/{test_event.id}/cancel-bookings",
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"eventId": test_event.id, "cancelledBookings": 0}

    assert await _statuses(session_factory, test_event.id) == after_retire
    event = await _event_row(session_factory, test_event.id)
    assert event.available_seats == 100


@pytest.mark.asyncio
async def test_repair_picks_up_stragglers(db_session, client: AsyncClient, admin_headers, test_user, test_event):
    """A booking left CONFIRMED on a retired event is cancelled by the repair pass."""
    test_event.is_active = False
    test_event.available_seats = 96
    db_session.add(_direct_booking(test_user.id, test_event, 4))
    await db_session.commit()

    response = await client.post(f"/api/v1/events/{test_event.id}/cancel-bookings", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["cancelledBookings"] == 1


@pytest.mark.asyncio
async def test_repair_rejects_active_event(client: AsyncClient, admin_headers, test_event):
    response = await client.post(f"/api/v1/events/{test_event.id}/cancel-bookings", headers=admin_headers)
    assert response.status_code == 400
