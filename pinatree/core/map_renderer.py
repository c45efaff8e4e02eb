"""
Map renderer: one Leaflet marker per tree, kept in sync with a record collection.
"""
import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import folium

from pinatree.core.geo import is_valid_coordinate
from pinatree.schemas.map import MarkerSpec

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)


def _get(record: Any, name: str, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def record_coordinates(record: Any) -> Optional[Tuple[float, float]]:
    """Coordinates of a tree-like object, or None if missing/invalid."""
    location = _get(record, "location")
    if location is None:
        return None
    latitude = _get(location, "latitude")
    longitude = _get(location, "longitude")
    if not is_valid_coordinate(latitude, longitude):
        return None
    return float(latitude), float(longitude)


def submitter_name(record: Any) -> Optional[str]:
    submitter = _get(record, "submitter")
    if submitter is None:
        return None
    return _get(submitter, "display_name")


def popup_html(name: str, species: str, image_url: Optional[str], submitter: Optional[str]) -> str:
    """Detail surface shown when a marker is clicked."""
    parts = ['<div class="tree-popup">']
    if image_url:
        parts.append(f'<img src="{html.escape(image_url, quote=True)}" alt="{html.escape(name, quote=True)}" width="200">')
    parts.append(f"<h4>{html.escape(name)}</h4>")
    parts.append(f"<p><em>{html.escape(species)}</em></p>")
    parts.append(f"<p>Planted by {html.escape(submitter or 'Anonymous')}</p>")
    parts.append("</div>")
    return "".join(parts)


def marker_for(record: Any) -> Optional[MarkerSpec]:
    """MarkerSpec for a record, or None if it cannot be placed."""
    record_id = _get(record, "id")
    coordinates = record_coordinates(record)
    if record_id is None or coordinates is None:
        return None

    name = _get(record, "name") or "Unnamed tree"
    species = _get(record, "species") or "Unknown species"
    image_url = _get(record, "image_url")
    submitter = submitter_name(record)
    return MarkerSpec(
        id=str(record_id),
        latitude=coordinates[0],
        longitude=coordinates[1],
        name=name,
        species=species,
        image_url=image_url,
        submitter=submitter,
        popup_html=popup_html(name, species, image_url, submitter),
    )


class MapRenderer:
    """
    Tracks the markers for a collection of trees.

    ``sync`` diffs the collection against the current markers so only the
    markers of added, changed or removed records are touched.
    """

    def __init__(
        self,
        default_center: Tuple[float, float] = (40.7128, -74.006),
        default_zoom: int = 12,
        tiles: str = "OpenStreetMap",
    ):
        self.default_center = default_center
        self.default_zoom = default_zoom
        self.tiles = tiles
        self._markers: Dict[str, MarkerSpec] = {}

    @property
    def markers(self) -> List[MarkerSpec]:
        return list(self._markers.values())

    def marker(self, record_id: str) -> Optional[MarkerSpec]:
        return self._markers.get(record_id)

    def add(self, record: Any) -> bool:
        marker = marker_for(record)
        if marker is None:
            return False
        self._markers[marker.id] = marker
        return True

    def remove(self, record_id: str) -> bool:
        return self._markers.pop(str(record_id), None) is not None

    def sync(self, records: Iterable[Any]) -> SyncResult:
        result = SyncResult()
        seen = set()

        for record in records:
            marker = marker_for(record)
            if marker is None:
                record_id = _get(record, "id")
                if record_id is None:
                    continue
                result.skipped.append(str(record_id))
                if self.remove(record_id):
                    result.removed.append(str(record_id))
                continue

            seen.add(marker.id)
            current = self._markers.get(marker.id)
            if current is None:
                self._markers[marker.id] = marker
                result.added.append(marker.id)
            elif current != marker:
                self._markers[marker.id] = marker
                result.updated.append(marker.id)

        for record_id in list(self._markers):
            if record_id not in seen and record_id not in result.removed:
                del self._markers[record_id]
                result.removed.append(record_id)

        if result.skipped:
            logger.debug(f"Skipped {len(result.skipped)} trees without valid coordinates")
        return result

    def bounds(self) -> Optional[List[List[float]]]:
        if not self._markers:
            return None
        lats = [m.latitude for m in self._markers.values()]
        lons = [m.longitude for m in self._markers.values()]
        return [[min(lats), min(lons)], [max(lats), max(lons)]]

    def build_map(self) -> folium.Map:
        bounds = self.bounds()
        center = bounds[0] if bounds and len(self._markers) == 1 else list(self.default_center)

        fmap = folium.Map(location=center, zoom_start=self.default_zoom, tiles=self.tiles)
        for marker in self._markers.values():
            folium.Marker(
                [marker.latitude, marker.longitude],
                popup=folium.Popup(marker.popup_html, max_width=250),
                tooltip=marker.name,
            ).add_to(fmap)

        if bounds and len(self._markers) > 1:
            fmap.fit_bounds(bounds)
        return fmap

    def render_html(self) -> str:
        return self.build_map().get_root().render()
