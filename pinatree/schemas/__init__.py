from pinatree.schemas.location import Location, LocationSource
from pinatree.schemas.tree import (
    Submitter,
    TreeCreate,
    TreeUpdate,
    TreeRecord,
    TreeQuery,
    TreeListResponse,
    NearbyTree
)
from pinatree.schemas.upload import ImageUploadResponse, ExifResponse
from pinatree.schemas.session import UserSession, SessionResponse
from pinatree.schemas.map import MarkerSpec

__all__ = [
    "Location",
    "LocationSource",
    "Submitter",
    "TreeCreate",
    "TreeUpdate",
    "TreeRecord",
    "TreeQuery",
    "TreeListResponse",
    "NearbyTree",
    "ImageUploadResponse",
    "ExifResponse",
    "UserSession",
    "SessionResponse",
    "MarkerSpec"
]
