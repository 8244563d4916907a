"""Reverse geocoding of GPS coordinates via Nominatim."""

import logging
from typing import Optional

import httpx

from . import __version__
from .config import GEOCODING_TIMEOUT
from .errors import NetworkError, NotFoundError, ParseError, RequestTimeoutError

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/reverse"
ZOOM_LEVEL = 10

# Most specific settlement first
ADDRESS_PREFERENCE = (
    "city",
    "town",
    "village",
    "hamlet",
    "suburb",
    "neighbourhood",
    "county",
    "state",
    "country",
)


class GeocodingResolver:
    """Resolve a coordinate pair to a human readable place name.

    Single attempt, no retries. Callers are expected to swallow every
    failure; see ``FetchLayer`` for how results are applied.
    """

    def __init__(
        self,
        url: str = NOMINATIM_URL,
        timeout: float = GEOCODING_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": f"nextcloud-slideshow/{__version__}"},
        )

    async def resolve(self, latitude: float, longitude: float) -> str:
        """Return the best available place name for the coordinates.

        Raises:
            NotFoundError: The response carried no usable address field.
            RequestTimeoutError: The lookup exceeded its timeout.
            NetworkError: Transport failure or non-2xx status.
            ParseError: The body was not the expected JSON.
        """
        params = {
            "format": "json",
            "lat": latitude,
            "lon": longitude,
            "zoom": ZOOM_LEVEL,
            "addressdetails": 1,
        }
        try:
            response = await self._client.get(self.url, params=params)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError("Geocoding request timeout", str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError("Geocoding request failed", details=str(e)) from e

        if not response.is_success:
            raise NetworkError(
                f"Geocoding failed with HTTP {response.status_code}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError("Failed to parse geocoding response", str(e)) from e
        if not isinstance(data, dict):
            raise ParseError("Failed to parse geocoding response", "expected a JSON object")

        place = pick_place_name(data.get("address") or {})
        if place is None:
            raise NotFoundError("No location found")
        return place

    async def close(self) -> None:
        await self._client.aclose()


def pick_place_name(address: dict) -> Optional[str]:
    """First non-empty field from ADDRESS_PREFERENCE, or None."""
    for key in ADDRESS_PREFERENCE:
        value = address.get(key)
        if value:
            return value
    return None
