"""
Tree persistence implementations: SQL database, in-memory fixtures, remote HTTP API.
"""
import json
import logging
import math
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import httpx
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pinatree.errors import PersistenceError, TreeNotFoundError
from pinatree.models.tree import Tree
from pinatree.schemas.location import Location
from pinatree.schemas.tree import Submitter, TreeCreate, TreeListResponse, TreeQuery, TreeRecord, TreeUpdate

logger = logging.getLogger(__name__)

FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"
TREES_FIXTURE = FIXTURES_DIR / "trees.json"


def new_tree_id() -> str:
    return f"tree-{uuid.uuid4().hex[:12]}"


def _timestamp(record: TreeRecord) -> float:
    ts = record.created_at
    if ts is None:
        return 0.0
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def matches_query(record: TreeRecord, query: TreeQuery) -> bool:
    if query.search:
        term = query.search.lower()
        haystack = [record.name, record.species, record.description] + list(record.tags)
        if not any(term in (value or "").lower() for value in haystack):
            return False

    if query.species and query.species.lower() not in record.species.lower():
        return False

    if query.has_bounds:
        lat, lon = record.location.latitude, record.location.longitude
        if not (query.south <= lat <= query.north and query.west <= lon <= query.east):
            return False

    return True


def paginate(records: List[TreeRecord], total: int, page: int, page_size: int) -> TreeListResponse:
    return TreeListResponse(
        trees=records,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


class InMemoryTreeRepository:
    """Trees kept in a dict, optionally seeded from the packaged fixtures."""

    def __init__(self, trees: Optional[Iterable[TreeRecord]] = None):
        self._trees: Dict[str, TreeRecord] = {t.id: t for t in trees or []}

    @classmethod
    def from_fixture(cls, path: Optional[Path] = None) -> "InMemoryTreeRepository":
        path = path or TREES_FIXTURE
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        trees = [TreeRecord.model_validate(item) for item in data]
        logger.info(f"Loaded {len(trees)} trees from {path}")
        return cls(trees)

    async def create(self, tree: TreeCreate) -> TreeRecord:
        record = TreeRecord(
            id=new_tree_id(),
            created_at=datetime.now(timezone.utc),
            **tree.model_dump(),
        )
        self._trees[record.id] = record
        return record

    async def get(self, tree_id: str) -> TreeRecord:
        record = self._trees.get(tree_id)
        if record is None:
            raise TreeNotFoundError("Tree not found")
        return record

    async def list_trees(self, query: TreeQuery) -> TreeListResponse:
        matched = [t for t in self._trees.values() if matches_query(t, query)]
        matched.sort(key=_timestamp, reverse=True)
        offset = (query.page - 1) * query.page_size
        return paginate(matched[offset:offset + query.page_size], len(matched), query.page, query.page_size)

    async def update(self, tree_id: str, changes: TreeUpdate) -> TreeRecord:
        existing = await self.get(tree_id)
        data = existing.model_dump()
        data.update(changes.model_dump(exclude_unset=True, exclude_none=True))
        data["updated_at"] = datetime.now(timezone.utc)
        record = TreeRecord.model_validate(data)
        self._trees[tree_id] = record
        return record

    async def delete(self, tree_id: str) -> None:
        if self._trees.pop(tree_id, None) is None:
            raise TreeNotFoundError("Tree not found")


class SqlTreeRepository:
    """Trees stored through a SQLAlchemy async session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def to_record(tree: Tree) -> TreeRecord:
        submitter = None
        if tree.submitter_id:
            submitter = Submitter(id=tree.submitter_id, display_name=tree.submitter_name or tree.submitter_id)
        return TreeRecord(
            id=tree.id,
            name=tree.name,
            species=tree.species,
            description=tree.description or "",
            date_planted=tree.date_planted,
            tags=list(tree.tags or []),
            status=tree.status or "healthy",
            location=Location(
                latitude=tree.latitude,
                longitude=tree.longitude,
                address=tree.address,
                source=tree.location_source,
            ),
            image_url=tree.image_url,
            submitter=submitter,
            created_at=tree.created_at,
            updated_at=tree.updated_at,
        )

    async def _load(self, tree_id: str) -> Tree:
        result = await self.db.execute(select(Tree).where(Tree.id == tree_id))
        tree = result.scalar_one_or_none()
        if not tree:
            raise TreeNotFoundError("Tree not found")
        return tree

    async def create(self, tree: TreeCreate) -> TreeRecord:
        row = Tree(
            id=new_tree_id(),
            name=tree.name,
            species=tree.species,
            description=tree.description,
            date_planted=tree.date_planted,
            latitude=tree.location.latitude,
            longitude=tree.location.longitude,
            address=tree.location.address,
            location_source=tree.location.source.value,
            image_url=tree.image_url,
            submitter_id=tree.submitter.id if tree.submitter else None,
            submitter_name=tree.submitter.display_name if tree.submitter else None,
            status=tree.status,
            tags=list(tree.tags),
        )
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to create tree: {e}")
        return self.to_record(row)

    async def get(self, tree_id: str) -> TreeRecord:
        return self.to_record(await self._load(tree_id))

    async def list_trees(self, query: TreeQuery) -> TreeListResponse:
        stmt = select(Tree)
        if query.search:
            term = f"%{query.search}%"
            stmt = stmt.where(or_(
                Tree.name.ilike(term),
                Tree.species.ilike(term),
                Tree.description.ilike(term),
            ))
        if query.species:
            stmt = stmt.where(Tree.species.ilike(f"%{query.species}%"))
        if query.has_bounds:
            stmt = stmt.where(
                Tree.latitude.between(query.south, query.north),
                Tree.longitude.between(query.west, query.east),
            )

        count_result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar()

        offset = (query.page - 1) * query.page_size
        result = await self.db.execute(
            stmt.order_by(Tree.created_at.desc()).offset(offset).limit(query.page_size)
        )
        trees = result.scalars().all()
        return paginate([self.to_record(t) for t in trees], total, query.page, query.page_size)

    async def update(self, tree_id: str, changes: TreeUpdate) -> TreeRecord:
        row = await self._load(tree_id)

        update_data = changes.model_dump(exclude_unset=True, exclude_none=True)
        location = update_data.pop("location", None)
        for field, value in update_data.items():
            setattr(row, field, value)
        if location is not None:
            row.latitude = location["latitude"]
            row.longitude = location["longitude"]
            row.address = location.get("address")
            row.location_source = getattr(location["source"], "value", location["source"])

        try:
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to update tree: {e}")
        return self.to_record(row)

    async def delete(self, tree_id: str) -> None:
        row = await self._load(tree_id)
        try:
            await self.db.delete(row)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(f"Failed to delete tree: {e}")


class HttpTreeRepository:
    """Trees stored by a remote JSON API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, action: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                raise TreeNotFoundError("Tree not found")
            if status == 400:
                raise PersistenceError("Validation failed: Required fields are missing")
            if status in (401, 403):
                raise PersistenceError("Permission denied")
            raise PersistenceError(f"Failed to {action}: server returned {status}")
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to {action}: {e}")

    @staticmethod
    def _unwrap(payload):
        if isinstance(payload, dict) and "tree" in payload:
            return payload["tree"]
        return payload

    async def create(self, tree: TreeCreate) -> TreeRecord:
        response = await self._request("POST", "/trees", "create tree", json=tree.model_dump(mode="json"))
        return TreeRecord.model_validate(self._unwrap(response.json()))

    async def get(self, tree_id: str) -> TreeRecord:
        response = await self._request("GET", f"/trees/{tree_id}", "fetch tree")
        return TreeRecord.model_validate(self._unwrap(response.json()))

    async def list_trees(self, query: TreeQuery) -> TreeListResponse:
        params = query.model_dump(exclude_none=True)
        response = await self._request("GET", "/trees", "fetch trees", params=params)
        payload = response.json()

        if isinstance(payload, list):
            records = [TreeRecord.model_validate(item) for item in payload]
            matched = [r for r in records if matches_query(r, query)]
            offset = (query.page - 1) * query.page_size
            return paginate(matched[offset:offset + query.page_size], len(matched), query.page, query.page_size)

        records = [TreeRecord.model_validate(item) for item in payload.get("trees", [])]
        page_size = payload.get("page_size") or payload.get("limit") or query.page_size
        return paginate(records, payload.get("total", len(records)), payload.get("page", query.page), page_size)

    async def update(self, tree_id: str, changes: TreeUpdate) -> TreeRecord:
        response = await self._request(
            "PUT", f"/trees/{tree_id}", "update tree",
            json=changes.model_dump(mode="json", exclude_unset=True, exclude_none=True),
        )
        return TreeRecord.model_validate(self._unwrap(response.json()))

    async def delete(self, tree_id: str) -> None:
        await self._request("DELETE", f"/trees/{tree_id}", "delete tree")
