"""
Request provenance: client address extraction and reverse geocoding.

The geocoder is a slow external call. The booking workflow only calls it
after the seat decrement has committed, and every failure mode degrades to
a coordinate placeholder; a lookup problem never aborts a booking.
"""

from typing import Optional

import httpx
from starlette.requests import Request

from eventbooking.core.config import Settings, get_settings
from eventbooking.core.logging import get_logger
from eventbooking.core.metrics import record_geocode

logger = get_logger(__name__)


def extract_client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client:
        return request.client.host
    return None


def coordinates_placeholder(latitude: float, longitude: float) -> str:
    return f"Lat: {latitude:.4f}, Lon: {longitude:.4f}"


def _name(address: dict, *keys: str) -> str:
    """First non-blank string among `keys`; other JSON types are ignored."""
    for key in keys:
        value = address.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def format_address(address: dict) -> Optional[str]:
    parts = [
        _name(address, "city", "town", "village"),
        _name(address, "state"),
        _name(address, "country"),
    ]
    return ", ".join(part for part in parts if part) or None


class LocationResolver:
    """
    Reverse geocoder backed by a Nominatim-compatible `/reverse` endpoint.

    One pooled AsyncClient per process; create it in the app lifespan and
    close it with `aclose()` on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        user_agent: str = "EventBooking/1.0",
        enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.enabled = enabled
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "LocationResolver":
        settings = settings or get_settings()
        return cls(
            base_url=settings.GEOCODER_URL,
            timeout=settings.GEOCODER_TIMEOUT_SECONDS,
            user_agent=settings.GEOCODER_USER_AGENT,
            enabled=settings.GEOCODER_ENABLED,
        )

    async def resolve(self, latitude: float, longitude: float) -> str:
        """Human-readable place for coordinates, or a placeholder on any failure."""
        fallback = coordinates_placeholder(latitude, longitude)
        if not self.enabled:
            record_geocode("disabled")
            return fallback

        try:
            response = await self._client.get(
                "/reverse",
                params={"lat": f"{latitude:.6f}", "lon": f"{longitude:.6f}", "format": "json"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            record_geocode("fallback")
            logger.warning("reverse_geocode_failed", latitude=latitude, longitude=longitude, error=str(e))
            return fallback
        except ValueError as e:
            record_geocode("fallback")
            logger.error("reverse_geocode_bad_payload", latitude=latitude, longitude=longitude, error=str(e))
            return fallback

        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict) or not address:
            record_geocode("fallback")
            if address:
                logger.error(
                    "reverse_geocode_bad_payload",
                    latitude=latitude,
                    longitude=longitude,
                    error=f"address is {type(address).__name__}",
                )
            return fallback

        place = format_address(address) or "Unknown Location"
        record_geocode("resolved")
        logger.info("reverse_geocoded", latitude=latitude, longitude=longitude, place=place)
        return place

    async def aclose(self) -> None:
        await self._client.aclose()
