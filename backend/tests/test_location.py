"""
Tests for client address extraction and reverse geocoding.
"""

import httpx
import pytest
from sqlalchemy import select
from starlette.requests import Request

from conftest import booking_payload
from eventbooking.models.booking import Booking
from eventbooking.services.location_service import (
    LocationResolver,
    coordinates_placeholder,
    extract_client_ip,
    format_address,
)


def _request(headers: dict | None = None, client=("10.1.2.3", 5555)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/bookings",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


def _resolver(handler, **kwargs) -> LocationResolver:
    return LocationResolver(base_url="http://geocoder.test", transport=httpx.MockTransport(handler), **kwargs)


def test_client_ip_prefers_first_forwarded_hop():
    request = _request({"X-Forwarded-For": " 203.0.113.7 , 10.0.0.1", "X-Real-IP": "198.51.100.2"})
    assert extract_client_ip(request) == "203.0.113.7"


def test_client_ip_falls_back_to_real_ip():
    assert extract_client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"


def test_client_ip_falls_back_to_peer():
    assert extract_client_ip(_request()) == "10.1.2.3"


def test_client_ip_unknown():
    assert extract_client_ip(_request(client=None)) is None


def test_coordinates_placeholder_uses_four_decimals():
    assert coordinates_placeholder(38.72231234, -9.1) == "Lat: 38.7223, Lon: -9.1000"


@pytest.mark.parametrize("address,expected", [
    ({"city": "Lisbon", "state": "Lisboa", "country": "Portugal"}, "Lisbon, Lisboa, Portugal"),
    ({"town": "Sintra", "country": "Portugal"}, "Sintra, Portugal"),
    ({"village": "Monsaraz", "state": "Évora"}, "Monsaraz, Évora"),
    ({"road": "Rua Augusta"}, None),
    ({"city": ["Lisbon"], "town": "Belém", "country": 351}, "Belém"),
    ({"city": "  ", "state": {"name": "Lisboa"}, "country": "Portugal"}, "Portugal"),
])
def test_format_address(address, expected):
    assert format_address(address) == expected


@pytest.mark.asyncio
async def test_resolve_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        seen["agent"] = request.headers["user-agent"]
        return httpx.Response(200, json={"address": {"city": "Porto", "country": "Portugal"}})

    resolver = _resolver(handler, user_agent="EventBookingTests/1.0")
    try:
        assert await resolver.resolve(41.1579, -8.6291) == "Porto, Portugal"
    finally:
        await resolver.aclose()

    assert seen["format"] == "json"
    assert seen["lat"] == "41.157900"
    assert seen["agent"] == "EventBookingTests/1.0"


@pytest.mark.asyncio
async def test_resolve_server_error_falls_back():
    resolver = _resolver(lambda request: httpx.Response(503))
    try:
        assert await resolver.resolve(1.5, 2.25) == "Lat: 1.5000, Lon: 2.2500"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
async def test_resolve_network_error_falls_back():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    resolver = _resolver(handler)
    try:
        assert await resolver.resolve(1.0, 2.0) == "Lat: 1.0000, Lon: 2.0000"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
async def test_resolve_bad_payload_falls_back():
    resolver = _resolver(lambda request: httpx.Response(200, content=b"<html>oops</html>"))
    try:
        assert await resolver.resolve(1.0, 2.0) == "Lat: 1.0000, Lon: 2.0000"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
async def test_resolve_without_address_falls_back():
    resolver = _resolver(lambda request: httpx.Response(200, json={"error": "Unable to geocode"}))
    try:
        assert await resolver.resolve(0.0, 0.0) == "Lat: 0.0000, Lon: 0.0000"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"address": ["Lisbon"]},
    {"address": "Lisbon, Portugal"},
    ["Lisbon"],
])
async def test_resolve_malformed_address_falls_back(payload):
    resolver = _resolver(lambda request: httpx.Response(200, json=payload))
    try:
        assert await resolver.resolve(38.7223, -9.1393) == "Lat: 38.7223, Lon: -9.1393"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
async def test_resolve_unnamed_address():
    resolver = _resolver(lambda request: httpx.Response(200, json={"address": {"road": "A1"}}))
    try:
        assert await resolver.resolve(0.0, 0.0) == "Unknown Location"
    finally:
        await resolver.aclose()


@pytest.mark.asyncio
async def test_disabled_resolver_never_calls_out():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("geocoder should not be called")

    resolver = _resolver(handler, enabled=False)
    try:
        assert await resolver.resolve(10.0, 20.0) == "Lat: 10.0000, Lon: 20.0000"
    finally:
        await resolver.aclose()


@pytest.fixture
def geocoder_handler():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    return handler


@pytest.mark.asyncio
async def test_geocoder_outage_does_not_fail_booking(client, auth_headers, test_event):
    """With the geocoder down the booking still commits."""
    response = await client.post(
        "/api/v1/bookings",
        json=booking_payload(test_event.id, tickets=1),
        headers=auth_headers,
    )
    assert response.status_code == 200

    event_response = await client.get(f"/api/v1/events/{test_event.id}")
    assert event_response.json()["availableSeats"] == 99


@pytest.mark.asyncio
async def test_geocoder_outage_stores_placeholder(client, auth_headers, test_event, session_factory):
    await client.post("/api/v1/bookings", json=booking_payload(test_event.id), headers=auth_headers)

    async with session_factory() as session:
        booking = (await session.execute(select(Booking))).scalar_one()
    assert booking.resolved_place == "Lat: 38.7223, Lon: -9.1393"
