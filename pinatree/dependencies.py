"""
FastAPI dependencies selecting the configured boundary implementations.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from pinatree.config import settings
from pinatree.core.boundaries import ImageStore, ReverseGeocoder, TreeRepository
from pinatree.core.coordinator import SubmissionCoordinator
from pinatree.core.map_renderer import MapRenderer
from pinatree.database import get_db
from pinatree.schemas.session import UserSession
from pinatree.services import (
    HttpImageStore,
    HttpTreeRepository,
    InMemoryImageStore,
    InMemoryTreeRepository,
    LocalImageStore,
    NominatimGeocoder,
    NullGeocoder,
    SessionStore,
    SqlTreeRepository,
)

_memory_repository = None
_image_store = None
_geocoder = None
_session_store = None


def get_memory_repository() -> InMemoryTreeRepository:
    global _memory_repository
    if _memory_repository is None:
        _memory_repository = InMemoryTreeRepository.from_fixture()
    return _memory_repository


async def get_tree_repository(db: AsyncSession = Depends(get_db)) -> TreeRepository:
    backend = settings.persistence_backend
    if backend == "memory":
        return get_memory_repository()
    if backend == "http":
        return HttpTreeRepository(settings.api_base_url, settings.api_token, settings.request_timeout_seconds)
    return SqlTreeRepository(db)


def get_image_store() -> ImageStore:
    global _image_store
    if _image_store is None:
        backend = settings.image_backend
        if backend == "memory":
            _image_store = InMemoryImageStore()
        elif backend == "http":
            _image_store = HttpImageStore(settings.api_base_url, settings.api_token, settings.request_timeout_seconds)
        else:
            _image_store = LocalImageStore(
                settings.upload_dir,
                settings.upload_url_prefix,
                settings.stored_image_max_size,
                settings.stored_image_quality,
            )
    return _image_store


def get_geocoder() -> ReverseGeocoder:
    global _geocoder
    if _geocoder is None:
        if settings.geocoder == "nominatim":
            _geocoder = NominatimGeocoder(
                settings.nominatim_url, settings.geocoder_user_agent, settings.request_timeout_seconds
            )
        else:
            _geocoder = NullGeocoder()
    return _geocoder


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store is None:
        _session_store = SessionStore.from_fixture(allow_guest_submissions=settings.allow_guest_submissions)
    return _session_store


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    store: SessionStore = Depends(get_session_store),
) -> Optional[UserSession]:
    """Current user from the X-User-Id header; None means guest."""
    return store.get(x_user_id)


def get_coordinator(
    trees: TreeRepository = Depends(get_tree_repository),
    images: ImageStore = Depends(get_image_store),
) -> SubmissionCoordinator:
    return SubmissionCoordinator(images, trees, timeout=settings.request_timeout_seconds)


_map_renderer = None


def get_map_renderer() -> MapRenderer:
    global _map_renderer
    if _map_renderer is None:
        _map_renderer = MapRenderer(settings.map_default_center, settings.map_default_zoom, settings.map_tiles)
    return _map_renderer
