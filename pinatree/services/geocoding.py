"""
Reverse geocoding via OpenStreetMap Nominatim.

Results are cached by coordinates rounded to 4 decimals (~11m). Failures
return None; an address is a nicety, never a requirement.
"""
import logging
from typing import Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class NullGeocoder:
    """Geocoder that never resolves an address."""

    async def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        return None


class NominatimGeocoder:

    def __init__(
        self,
        url: str = "https://nominatim.openstreetmap.org/reverse",
        user_agent: str = "pin-a-tree/1.0",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self.transport = transport
        self._cache: Dict[Tuple[float, float], str] = {}

    async def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        key = (round(latitude, 4), round(longitude, 4))
        if key in self._cache:
            return self._cache[key]

        params = {
            "lat": key[0],
            "lon": key[1],
            "format": "json",
            "accept-language": "en",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.url, params=params, headers={"User-Agent": self.user_agent})
        except httpx.HTTPError as e:
            logger.warning(f"Reverse geocoding failed for {key}: {e}")
            return None

        if response.status_code == 429:
            logger.warning("Reverse geocoding rate limited")
            return None
        if response.status_code != 200:
            logger.warning(f"Reverse geocoding returned {response.status_code} for {key}")
            return None

        try:
            address = response.json().get("display_name")
        except ValueError:
            logger.warning(f"Reverse geocoding returned invalid JSON for {key}")
            return None

        if address:
            self._cache[key] = address
        return address or None
