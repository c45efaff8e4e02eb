import asyncio
import io

import httpx
import pytest
from PIL import Image

from pinatree.errors import ImageUploadError
from pinatree.services import HttpImageStore, InMemoryImageStore, LocalImageStore
from conftest import jpeg_bytes


def test_local_store_resizes_and_serves_under_prefix(tmp_path):
    store = LocalImageStore(str(tmp_path), "/uploads", max_size=(80, 60))
    url = asyncio.run(store.upload("oak.png", "image/png", jpeg_bytes(size=(400, 300))))

    assert url.startswith("/uploads/tree-")
    assert url.endswith(".jpg")
    stored = tmp_path / url.rsplit("/", 1)[1]
    with Image.open(stored) as image:
        assert image.format == "JPEG"
        assert image.size == (80, 60)

    assert store.discard(url)
    assert not stored.exists()
    assert not store.discard(url)
    assert not store.discard("https://elsewhere.example.org/oak.jpg")


def test_local_store_rejects_unreadable_image(tmp_path):
    store = LocalImageStore(str(tmp_path))
    with pytest.raises(ImageUploadError):
        asyncio.run(store.upload("oak.jpg", "image/jpeg", b"not an image"))


def test_memory_store_keeps_bytes():
    store = InMemoryImageStore()
    url = asyncio.run(store.upload("oak.jpg", "image/jpeg", b"data"))
    assert store.images[url] == b"data"


def test_http_store_posts_multipart_image():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json={"imageUrl": "https://cdn.example.org/oak.jpg"})

    store = HttpImageStore("https://api.example.org/api", transport=httpx.MockTransport(handler))
    url = asyncio.run(store.upload("oak.jpg", "image/jpeg", b"jpeg-bytes"))

    assert url == "https://cdn.example.org/oak.jpg"
    assert seen["path"] == "/api/upload/image"
    assert b'name="image"' in seen["body"]
    assert b"jpeg-bytes" in seen["body"]


def test_http_store_failures():
    failing = HttpImageStore("https://api.example.org", transport=httpx.MockTransport(lambda r: httpx.Response(503)))
    with pytest.raises(ImageUploadError):
        asyncio.run(failing.upload("oak.jpg", "image/jpeg", b"x"))

    no_url = HttpImageStore("https://api.example.org", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    with pytest.raises(ImageUploadError, match="did not include an image URL"):
        asyncio.run(no_url.upload("oak.jpg", "image/jpeg", b"x"))
