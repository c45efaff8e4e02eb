"""
EXIF GPS extraction.

Best effort: images without GPS tags, malformed metadata and unreadable
files all yield None rather than raising.
"""
import asyncio
import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from pinatree.core.geo import is_valid_coordinate, normalize_coordinates

logger = logging.getLogger(__name__)

GPS_IFD = 0x8825

# GPS IFD tag numbers
GPS_LATITUDE_REF = 1
GPS_LATITUDE = 2
GPS_LONGITUDE_REF = 3
GPS_LONGITUDE = 4


def dms_to_degrees(values) -> float:
    """Convert a (degrees, minutes[, seconds]) sequence of rationals to decimal degrees."""
    parts = [_rational_to_float(v) for v in values]
    if len(parts) == 2:
        degrees, minutes = parts
        seconds = 0.0
    elif len(parts) == 3:
        degrees, minutes, seconds = parts
    else:
        raise ValueError(f"Expected 2 or 3 DMS components, got {len(parts)}")
    return degrees + minutes / 60.0 + seconds / 3600.0


def gps_from_ifd(gps: dict) -> Optional[Tuple[float, float]]:
    """Decode latitude/longitude from a GPS IFD mapping."""
    lat_values = gps.get(GPS_LATITUDE)
    lat_ref = gps.get(GPS_LATITUDE_REF)
    lon_values = gps.get(GPS_LONGITUDE)
    lon_ref = gps.get(GPS_LONGITUDE_REF)

    if not all([lat_values, lat_ref, lon_values, lon_ref]):
        return None

    latitude = dms_to_degrees(lat_values)
    longitude = dms_to_degrees(lon_values)
    if _ref_letter(lat_ref) == "S":
        latitude = -latitude
    if _ref_letter(lon_ref) == "W":
        longitude = -longitude

    if not is_valid_coordinate(latitude, longitude):
        return None
    return normalize_coordinates(latitude, longitude)


def extract_gps(data: bytes) -> Optional[Tuple[float, float]]:
    """
    Read GPS coordinates embedded in an image.

    Args:
        data: Raw image bytes

    Returns:
        (latitude, longitude) with 6 decimal places, or None if absent/unreadable
    """
    try:
        with Image.open(io.BytesIO(data)) as image:
            gps = image.getexif().get_ifd(GPS_IFD)
        if not gps:
            logger.debug("No GPS data found in image")
            return None
        return gps_from_ifd(gps)
    except (UnidentifiedImageError, OSError, ValueError, TypeError, ZeroDivisionError, KeyError) as e:
        logger.warning(f"Failed to extract GPS from EXIF: {e}")
        return None


async def read_gps(data: bytes) -> Optional[Tuple[float, float]]:
    """Run extract_gps off the event loop."""
    return await asyncio.to_thread(extract_gps, data)


def _rational_to_float(value) -> float:
    if isinstance(value, tuple) and len(value) == 2:
        num, den = value
        return float(num) / float(den)
    return float(value)


def _ref_letter(ref) -> str:
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    return str(ref).strip("\x00 ").upper()[:1]
