import asyncio
import json
from datetime import date

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from pinatree.database import Base
from pinatree.errors import PersistenceError, TreeNotFoundError
from pinatree.schemas.location import Location, LocationSource
from pinatree.schemas.tree import Submitter, TreeCreate, TreeQuery, TreeUpdate
from pinatree.services import HttpTreeRepository, InMemoryTreeRepository, SqlTreeRepository


def new_tree(name="Founders Oak", species="Quercus robur", latitude=40.785091, longitude=-73.968285, **kwargs):
    return TreeCreate(
        name=name,
        species=species,
        description="Planted at the park entrance.",
        date_planted=date(2023, 4, 22),
        location=Location(latitude=latitude, longitude=longitude, source=LocationSource.MAP_CLICK),
        **kwargs,
    )


# ---------------------------------------------------------------- in memory

def test_fixture_repository_loads_seed_trees():
    repo = InMemoryTreeRepository.from_fixture()
    result = asyncio.run(repo.list_trees(TreeQuery(page_size=100)))

    assert result.total >= 3
    # newest first
    created = [t.created_at for t in result.trees]
    assert created == sorted(created, reverse=True)


def test_memory_crud():
    repo = InMemoryTreeRepository()

    async def scenario():
        record = await repo.create(new_tree(submitter=Submitter(id="user-1", display_name="Maya Green")))
        fetched = await repo.get(record.id)
        updated = await repo.update(record.id, TreeUpdate(name="Old Oak", description=None))
        await repo.delete(record.id)
        return record, fetched, updated

    record, fetched, updated = asyncio.run(scenario())
    assert fetched == record
    assert updated.name == "Old Oak"
    assert updated.description == "Planted at the park entrance."
    assert updated.updated_at is not None
    with pytest.raises(TreeNotFoundError):
        asyncio.run(repo.get(record.id))
    with pytest.raises(TreeNotFoundError):
        asyncio.run(repo.delete(record.id))


def test_memory_filters_and_pages():
    repo = InMemoryTreeRepository()

    async def scenario():
        await repo.create(new_tree("Founders Oak", "Quercus robur"))
        await repo.create(new_tree("Riverside Maple", "Acer saccharum", tags=["riverside"]))
        await repo.create(new_tree("Thames Plane", "Platanus", latitude=51.5074, longitude=-0.1278))
        return (
            await repo.list_trees(TreeQuery(search="maple")),
            await repo.list_trees(TreeQuery(search="RIVERSIDE")),
            await repo.list_trees(TreeQuery(species="quercus")),
            await repo.list_trees(TreeQuery(south=50, north=52, west=-1, east=1)),
            await repo.list_trees(TreeQuery(page=2, page_size=2)),
        )

    by_name, by_tag, by_species, by_bounds, page_two = asyncio.run(scenario())
    assert [t.name for t in by_name.trees] == ["Riverside Maple"]
    assert by_tag.total == 1
    assert [t.name for t in by_species.trees] == ["Founders Oak"]
    assert [t.name for t in by_bounds.trees] == ["Thames Plane"]
    assert page_two.total == 3
    assert page_two.total_pages == 2
    assert len(page_two.trees) == 1


# ---------------------------------------------------------------------- SQL

def run_sql(tmp_path, scenario):
    async def runner():
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'trees.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        sessions = async_sessionmaker(engine, expire_on_commit=False)
        try:
            async with sessions() as db:
                return await scenario(SqlTreeRepository(db))
        finally:
            await engine.dispose()

    return asyncio.run(runner())


def test_sql_create_and_get(tmp_path):
    async def scenario(repo):
        record = await repo.create(new_tree(
            image_url="/uploads/oak.jpg",
            submitter=Submitter(id="user-1", display_name="Maya Green"),
        ))
        return record, await repo.get(record.id)

    record, fetched = run_sql(tmp_path, scenario)
    assert record.id.startswith("tree-")
    assert fetched.name == "Founders Oak"
    assert fetched.location.latitude == 40.785091
    assert fetched.location.source == LocationSource.MAP_CLICK
    assert fetched.submitter.display_name == "Maya Green"
    assert fetched.image_url == "/uploads/oak.jpg"
    assert fetched.created_at is not None


def test_sql_list_update_delete(tmp_path):
    async def scenario(repo):
        oak = await repo.create(new_tree("Founders Oak", "Quercus robur"))
        await repo.create(new_tree("Thames Plane", "Platanus", latitude=51.5074, longitude=-0.1278))

        searched = await repo.list_trees(TreeQuery(search="plane"))
        bounded = await repo.list_trees(TreeQuery(south=40, north=41, west=-75, east=-73))
        moved = await repo.update(oak.id, TreeUpdate(
            location=Location(latitude=40.0, longitude=-74.0, address="Somewhere", source=LocationSource.TYPED),
        ))
        await repo.delete(oak.id)
        remaining = await repo.list_trees(TreeQuery())
        return searched, bounded, moved, remaining

    searched, bounded, moved, remaining = run_sql(tmp_path, scenario)
    assert [t.name for t in searched.trees] == ["Thames Plane"]
    assert [t.name for t in bounded.trees] == ["Founders Oak"]
    assert moved.location.source == LocationSource.TYPED
    assert moved.location.address == "Somewhere"
    assert remaining.total == 1


def test_sql_missing_tree(tmp_path):
    async def scenario(repo):
        with pytest.raises(TreeNotFoundError):
            await repo.get("tree-missing")
        with pytest.raises(TreeNotFoundError):
            await repo.delete("tree-missing")

    run_sql(tmp_path, scenario)


# --------------------------------------------------------------------- HTTP

def record_json(tree_id="tree-remote1", name="Founders Oak"):
    return {
        "id": tree_id,
        "name": name,
        "species": "Quercus robur",
        "description": "Planted at the park entrance.",
        "date_planted": "2023-04-22",
        "location": {"latitude": 40.785091, "longitude": -73.968285, "source": "manual-map-click"},
        "created_at": "2023-04-22T15:30:00+00:00",
    }


def http_repo(handler):
    return HttpTreeRepository("https://api.example.org/api", token="secret", transport=httpx.MockTransport(handler))


def test_http_create_sends_record_and_unwraps_response():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json={"tree": record_json()})

    record = asyncio.run(http_repo(handler).create(new_tree()))
    assert record.id == "tree-remote1"
    assert seen["method"] == "POST"
    assert seen["path"] == "/api/trees"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["location"]["source"] == "manual-map-click"


def test_http_list_accepts_plain_array():
    def handler(request):
        return httpx.Response(200, json=[record_json("tree-1", "Oak"), record_json("tree-2", "Maple")])

    result = asyncio.run(http_repo(handler).list_trees(TreeQuery(search="maple")))
    assert [t.id for t in result.trees] == ["tree-2"]


def test_http_list_accepts_paged_payload():
    def handler(request):
        assert request.url.params["page"] == "2"
        return httpx.Response(200, json={"trees": [record_json()], "total": 21, "page": 2, "page_size": 20})

    result = asyncio.run(http_repo(handler).list_trees(TreeQuery(page=2)))
    assert result.total == 21
    assert result.total_pages == 2


@pytest.mark.parametrize("status, message", [
    (400, "Validation failed: Required fields are missing"),
    (401, "Permission denied"),
    (403, "Permission denied"),
    (500, "Failed to create tree: server returned 500"),
])
def test_http_errors_map_to_persistence_error(status, message):
    repo = http_repo(lambda request: httpx.Response(status, json={"error": "nope"}))
    with pytest.raises(PersistenceError) as excinfo:
        asyncio.run(repo.create(new_tree()))
    assert str(excinfo.value) == message


def test_http_not_found_and_network_error():
    with pytest.raises(TreeNotFoundError):
        asyncio.run(http_repo(lambda request: httpx.Response(404)).get("tree-x"))

    def offline(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PersistenceError, match="Failed to fetch tree"):
        asyncio.run(http_repo(offline).get("tree-x"))
