"""
Interfaces of the collaborators the submission pipeline depends on.

Implementations live in ``pinatree.services``; the pipeline never depends on
which one is active.
"""
from typing import Optional, Protocol, Tuple

from pinatree.schemas.tree import TreeCreate, TreeListResponse, TreeQuery, TreeRecord, TreeUpdate


class ImageStore(Protocol):
    async def upload(self, filename: str, content_type: str, data: bytes) -> str:
        """Store an image and return its durable URL. Raises ImageUploadError."""
        ...


class TreeRepository(Protocol):
    async def create(self, tree: TreeCreate) -> TreeRecord:
        """Persist a tree and return it with its assigned id. Raises PersistenceError."""
        ...

    async def get(self, tree_id: str) -> TreeRecord:
        """Raises TreeNotFoundError."""
        ...

    async def list_trees(self, query: TreeQuery) -> TreeListResponse:
        ...

    async def update(self, tree_id: str, changes: TreeUpdate) -> TreeRecord:
        ...

    async def delete(self, tree_id: str) -> None:
        ...


class ReverseGeocoder(Protocol):
    async def reverse(self, latitude: float, longitude: float) -> Optional[str]:
        """Human readable address, or None. May raise on network errors."""
        ...


class DeviceGeolocation(Protocol):
    async def current_position(self) -> Tuple[float, float]:
        """One-shot device fix. Raises GeolocationDeniedError."""
        ...
