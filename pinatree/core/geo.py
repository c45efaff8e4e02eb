"""
Coordinate helpers: validation, display formatting and distances.
"""
import math
from typing import List, Optional, Tuple

COORDINATE_PRECISION = 6

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MILES = 3959.0


def validate_coordinates(latitude, longitude) -> List[str]:
    """Return a list of problems with a coordinate pair (empty if valid)."""
    errors = []

    if not _is_number(latitude):
        errors.append("Latitude must be a valid number")
    elif not -90 <= latitude <= 90:
        errors.append("Latitude must be between -90 and 90 degrees")

    if not _is_number(longitude):
        errors.append("Longitude must be a valid number")
    elif not -180 <= longitude <= 180:
        errors.append("Longitude must be between -180 and 180 degrees")

    return errors


def is_valid_coordinate(latitude, longitude) -> bool:
    return not validate_coordinates(latitude, longitude)


def normalize_coordinates(latitude: float, longitude: float) -> Tuple[float, float]:
    return round(float(latitude), COORDINATE_PRECISION), round(float(longitude), COORDINATE_PRECISION)


def format_coordinates(latitude: float, longitude: float, precision: int = 4) -> str:
    """Format as e.g. ``51.5074°N, 0.1278°W``."""
    if not is_valid_coordinate(latitude, longitude):
        return "Invalid coordinates"

    lat_dir = "N" if latitude >= 0 else "S"
    lon_dir = "E" if longitude >= 0 else "W"
    return f"{abs(latitude):.{precision}f}°{lat_dir}, {abs(longitude):.{precision}f}°{lon_dir}"


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float, unit: str = "km") -> float:
    """Great-circle distance between two points, rounded to 2 decimals."""
    radius = EARTH_RADIUS_MILES if unit == "miles" else EARTH_RADIUS_KM

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(radius * c, 2)


def bounding_box(latitude: float, longitude: float, radius_km: float) -> Tuple[float, float, float, float]:
    """(south, north, west, east) box enclosing a radius around a point."""
    lat_delta = radius_km / 111.0
    cos_lat = math.cos(math.radians(latitude))
    lon_delta = 180.0 if cos_lat < 1e-6 else min(180.0, radius_km / (111.0 * cos_lat))
    return (
        max(-90.0, latitude - lat_delta),
        min(90.0, latitude + lat_delta),
        max(-180.0, longitude - lon_delta),
        min(180.0, longitude + lon_delta),
    )


def _is_number(value: Optional[object]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and not math.isinf(value)
