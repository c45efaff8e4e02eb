import asyncio
from datetime import date

import pytest

from pinatree.core.coordinator import SubmissionCoordinator
from pinatree.core.form import TreeForm
from pinatree.core.ingestion import ImageFile
from pinatree.errors import ImageUploadError, PersistenceError
from pinatree.schemas.location import Location, LocationSource
from pinatree.schemas.tree import Submitter
from pinatree.services import InMemoryImageStore, InMemoryTreeRepository


class BrokenImageStore:
    async def upload(self, filename, content_type, data):
        raise ImageUploadError("storage offline")


class SlowImageStore:
    async def upload(self, filename, content_type, data):
        await asyncio.sleep(1)
        return "never"


class FailingRepository(InMemoryTreeRepository):
    def __init__(self, failures=1):
        super().__init__()
        self.failures = failures
        self.calls = 0

    async def create(self, tree):
        self.calls += 1
        if self.calls <= self.failures:
            raise PersistenceError("Failed to create tree: database unavailable")
        return await super().create(tree)


class ExplodingRepository(InMemoryTreeRepository):
    async def create(self, tree):
        raise RuntimeError("connection reset")


FORM = TreeForm(
    name="  Riverside Maple ",
    species="Acer saccharum",
    date_planted=date(2023, 10, 7),
    description="Sugar maple on the river walk.",
)
LOCATION = Location(latitude=40.800383, longitude=-73.972198, source=LocationSource.MAP_CLICK)
IMAGE = ImageFile("maple.jpg", "image/jpeg", b"jpeg-bytes")


def test_submit_uploads_image_and_creates_record():
    images = InMemoryImageStore()
    trees = InMemoryTreeRepository()
    submitter = Submitter(id="user-2", display_name="Tomas Oakley")

    record = asyncio.run(SubmissionCoordinator(images, trees).submit(FORM, LOCATION, IMAGE, submitter))

    assert record.id.startswith("tree-")
    assert record.name == "Riverside Maple"
    assert record.location == LOCATION
    assert record.image_url in images.images
    assert record.submitter.display_name == "Tomas Oakley"


def test_image_failure_still_creates_record():
    trees = InMemoryTreeRepository()
    record = asyncio.run(SubmissionCoordinator(BrokenImageStore(), trees).submit(FORM, LOCATION, IMAGE))

    assert record.image_url is None
    assert asyncio.run(trees.get(record.id)).name == "Riverside Maple"


def test_image_timeout_still_creates_record():
    coordinator = SubmissionCoordinator(SlowImageStore(), InMemoryTreeRepository(), timeout=0.01)
    record = asyncio.run(coordinator.submit(FORM, LOCATION, IMAGE))
    assert record.image_url is None


def test_submit_without_image():
    images = InMemoryImageStore()
    record = asyncio.run(SubmissionCoordinator(images, InMemoryTreeRepository()).submit(FORM, LOCATION))
    assert record.image_url is None
    assert images.images == {}


def test_persistence_failure_is_raised():
    coordinator = SubmissionCoordinator(InMemoryImageStore(), FailingRepository())
    with pytest.raises(PersistenceError, match="database unavailable"):
        asyncio.run(coordinator.submit(FORM, LOCATION, IMAGE))


def test_unexpected_repository_error_is_wrapped():
    coordinator = SubmissionCoordinator(InMemoryImageStore(), ExplodingRepository())
    with pytest.raises(PersistenceError, match="Failed to create tree: connection reset"):
        asyncio.run(coordinator.submit(FORM, LOCATION))


def test_record_rejected_by_schema_uploads_nothing():
    images = InMemoryImageStore()
    trees = InMemoryTreeRepository()
    form = TreeForm(
        name="x" * 300,
        species="Acer saccharum",
        date_planted=date(2023, 10, 7),
        description="Sugar maple on the river walk.",
    )

    with pytest.raises(PersistenceError, match="invalid name"):
        asyncio.run(SubmissionCoordinator(images, trees).submit(form, LOCATION, IMAGE))
    assert images.images == {}
