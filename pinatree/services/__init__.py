from pinatree.services.tree_repository import (
    InMemoryTreeRepository,
    SqlTreeRepository,
    HttpTreeRepository,
)
from pinatree.services.image_store import LocalImageStore, InMemoryImageStore, HttpImageStore
from pinatree.services.geocoding import NominatimGeocoder, NullGeocoder
from pinatree.services.session_service import SessionStore
from pinatree.services.geolocation import ReportedPosition
from pinatree.services.draft_service import DraftService, get_draft_service

__all__ = [
    "InMemoryTreeRepository", "SqlTreeRepository", "HttpTreeRepository",
    "LocalImageStore", "InMemoryImageStore", "HttpImageStore",
    "NominatimGeocoder", "NullGeocoder",
    "SessionStore", "ReportedPosition",
    "DraftService", "get_draft_service",
]
