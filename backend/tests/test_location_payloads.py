"""
Bookings against a geocoder that answers 200 with a malformed address.
"""

import httpx
import pytest
from sqlalchemy import select

from conftest import booking_payload
from eventbooking.models.booking import Booking
from eventbooking.services.location_service import LocationResolver


@pytest.fixture
def geocoder_handler():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"address": ["Lisbon"]})

    return handler


@pytest.mark.asyncio
async def test_malformed_address_does_not_fail_booking(client, auth_headers, test_event, session_factory):
    response = await client.post(
        "/api/v1/bookings",
        json=booking_payload(test_event.id, tickets=2),
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["tickets"] == 2

    async with session_factory() as session:
        bookings = (await session.execute(select(Booking))).scalars().all()
    assert len(bookings) == 1
    assert bookings[0].resolved_place == "Lat: 38.7223, Lon: -9.1393"


@pytest.mark.asyncio
async def test_resolver_crash_does_not_fail_booking(
    client, auth_headers, test_event, session_factory, monkeypatch
):
    async def broken_resolve(self, latitude, longitude):
        raise RuntimeError("resolver bug")

    monkeypatch.setattr(LocationResolver, "resolve", broken_resolve)

    response = await client.post(
        "/api/v1/bookings",
        json=booking_payload(test_event.id),
        headers=auth_headers,
    )
    assert response.status_code == 200

    async with session_factory() as session:
        booking = (await session.execute(select(Booking))).scalar_one()
    assert booking.resolved_place is None
