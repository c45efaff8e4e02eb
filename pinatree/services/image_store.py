"""
Image upload implementations.
"""
import asyncio
import io
import logging
import os
import time
import uuid
from typing import Dict, Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

from pinatree.errors import ImageUploadError

logger = logging.getLogger(__name__)


def stored_filename() -> str:
    return f"tree-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}.jpg"


class LocalImageStore:
    """
    Resizes images to fit within max_size, re-encodes as JPEG and writes
    them to upload_dir. Files are served under url_prefix.
    """

    def __init__(
        self,
        upload_dir: str,
        url_prefix: str = "/uploads",
        max_size: Tuple[int, int] = (800, 600),
        quality: int = 80,
    ):
        self.upload_dir = upload_dir
        self.url_prefix = url_prefix.rstrip("/")
        self.max_size = max_size
        self.quality = quality

    def _write(self, data: bytes) -> str:
        os.makedirs(self.upload_dir, exist_ok=True)
        filename = stored_filename()
        file_path = os.path.join(self.upload_dir, filename)

        with Image.open(io.BytesIO(data)) as image:
            image = image.convert("RGB")
            image.thumbnail(self.max_size)
            image.save(file_path, format="JPEG", quality=self.quality)
        return filename

    async def upload(self, filename: str, content_type: str, data: bytes) -> str:
        try:
            stored = await asyncio.to_thread(self._write, data)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageUploadError(f"Failed to upload image: {e}")

        logger.info(f"Stored {filename} as {stored}")
        return f"{self.url_prefix}/{stored}"

    def discard(self, url: str) -> bool:
        """Delete a file previously returned by upload. Returns True if removed."""
        if not url.startswith(self.url_prefix + "/"):
            return False
        file_path = os.path.join(self.upload_dir, os.path.basename(url))
        try:
            os.remove(file_path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete {file_path}: {e}")
            return False
        return True


class InMemoryImageStore:
    """Keeps uploaded bytes in memory; used with the fixture backend."""

    def __init__(self):
        self.images: Dict[str, bytes] = {}

    async def upload(self, filename: str, content_type: str, data: bytes) -> str:
        url = f"memory://images/{uuid.uuid4().hex[:12]}-{filename}"
        self.images[url] = data
        return url


class HttpImageStore:
    """Posts the image to a remote ``/upload/image`` endpoint."""

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

    async def upload(self, filename: str, content_type: str, data: bytes) -> str:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post("/upload/image", files={"image": (filename, data, content_type)})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise ImageUploadError(f"Failed to upload image: {e}")
        except ValueError as e:
            raise ImageUploadError(f"Invalid upload response: {e}")

        image_url = payload.get("imageUrl") or payload.get("image_url")
        if not image_url:
            raise ImageUploadError("Upload response did not include an image URL")
        return image_url
