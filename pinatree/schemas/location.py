from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional

from pinatree.core.geo import COORDINATE_PRECISION, format_coordinates


class LocationSource(str, Enum):
    """How a location was obtained."""
    EXTRACTED = "extracted-from-image"
    MAP_CLICK = "manual-map-click"
    DEVICE = "device-geolocation"
    TYPED = "manually-typed-coordinates"


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    source: LocationSource

    @field_validator("latitude", "longitude")
    @classmethod
    def round_precision(cls, v):
        return round(v, COORDINATE_PRECISION)

    @property
    def display_address(self) -> str:
        """Address if resolved, otherwise the formatted coordinates."""
        return self.address or format_coordinates(self.latitude, self.longitude)

    class Config:
        frozen = True
