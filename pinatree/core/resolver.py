"""
Location resolver: keeps the single authoritative location of a submission.

Merge policy:
    - An EXIF extraction result is applied only while the user has not chosen
      a location themselves (no location yet, or the current one was also
      extracted).
    - Map clicks, device geolocation and typed coordinates always replace the
      current location.

Every write bumps ``revision``; every selected or removed file bumps
``generation``. Asynchronous results carry the value they were started with
and are dropped when it no longer matches, so a slow EXIF read can never
overwrite a newer manual choice and a slow address lookup never decorates
the wrong location.
"""
import logging
from typing import Optional, Tuple

from pinatree.core.geo import validate_coordinates
from pinatree.errors import InvalidCoordinatesError
from pinatree.schemas.location import Location, LocationSource

logger = logging.getLogger(__name__)

MANUAL_SOURCES = (LocationSource.MAP_CLICK, LocationSource.DEVICE, LocationSource.TYPED)


class LocationResolver:

    def __init__(self):
        self._location: Optional[Location] = None
        self._revision = 0
        self._generation = 0

    @property
    def location(self) -> Optional[Location]:
        return self._location

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def generation(self) -> int:
        return self._generation

    def begin_file(self) -> int:
        """A new file was selected; returns the generation for its extraction."""
        self._generation += 1
        return self._generation

    def drop_file(self) -> bool:
        """
        The selected file was removed.

        Pending extractions become stale. A location that came from the
        removed file is cleared. Returns True if the location was cleared.
        """
        self._generation += 1
        if self._location is not None and self._location.source == LocationSource.EXTRACTED:
            self._write(None)
            return True
        return False

    def apply_extraction(self, generation: int, coordinates: Optional[Tuple[float, float]]) -> bool:
        """Apply an EXIF result. Returns True if it became authoritative."""
        if generation != self._generation:
            logger.debug(f"Discarding stale extraction (generation {generation} != {self._generation})")
            return False
        if coordinates is None:
            return False
        if self._location is not None and self._location.source in MANUAL_SOURCES:
            logger.debug("Keeping user-chosen location over extracted coordinates")
            return False

        latitude, longitude = coordinates
        self._write(Location(latitude=latitude, longitude=longitude, source=LocationSource.EXTRACTED))
        return True

    def set_manual(self, latitude, longitude, source: LocationSource) -> Location:
        """Replace the location with a user-chosen one."""
        if source not in MANUAL_SOURCES:
            raise ValueError(f"Not a manual location source: {source}")

        problems = validate_coordinates(latitude, longitude)
        if problems:
            raise InvalidCoordinatesError("; ".join(problems))

        location = Location(latitude=latitude, longitude=longitude, source=source)
        self._write(location)
        return location

    def apply_address(self, revision: int, address: Optional[str]) -> bool:
        """Attach a reverse-geocoded address to the location it was looked up for."""
        if revision != self._revision or self._location is None:
            logger.debug("Discarding address for a location that has since changed")
            return False
        if not address:
            return False
        self._location = self._location.model_copy(update={"address": address})
        return True

    def clear(self) -> None:
        self._generation += 1
        self._write(None)

    def _write(self, location: Optional[Location]) -> None:
        self._location = location
        self._revision += 1
