"""
Device geolocation as reported by the client.

The browser obtains the fix (or the denial); the service receives it and
replays it through the DeviceGeolocation interface.
"""
from typing import Optional, Tuple

from pinatree.errors import GeolocationDeniedError


class ReportedPosition:

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        denied: bool = False,
        message: Optional[str] = None,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.denied = denied
        self.message = message

    async def current_position(self) -> Tuple[float, float]:
        if self.denied:
            raise GeolocationDeniedError(self.message or "Location access denied by user")
        if self.latitude is None or self.longitude is None:
            raise GeolocationDeniedError(self.message or "Location information unavailable")
        return self.latitude, self.longitude
