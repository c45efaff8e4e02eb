"""
Image ingestion: validate an incoming file and produce a preview handle.
"""
import base64
import io
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from pinatree.errors import ImageValidationError

logger = logging.getLogger(__name__)


@dataclass
class ImageFile:
    """Raw file as received from an upload."""
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class PreviewHandle:
    """
    Downscaled data URL for immediate display.

    Must be released when replaced or when its owner is discarded.
    """

    def __init__(self, url: str):
        self._url: Optional[str] = url

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def released(self) -> bool:
        return self._url is None

    def release(self) -> None:
        self._url = None


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.5 MB``."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    value = round(value, 1)
    if value == int(value):
        value = int(value)
    return f"{value} {units[i]}"


def validate_image_file(image: ImageFile, max_bytes: int) -> None:
    """Raise ImageValidationError if the file is not an acceptable image."""
    if not image.content_type or not image.content_type.startswith("image/"):
        raise ImageValidationError("File must be an image")
    if image.size == 0:
        raise ImageValidationError("File is empty")
    if image.size > max_bytes:
        raise ImageValidationError(
            f"File too large. Maximum size: {format_file_size(max_bytes)}"
        )


def create_preview(data: bytes, max_size: Tuple[int, int] = (400, 400), quality: int = 80) -> PreviewHandle:
    """Thumbnail the image into a JPEG data URL."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image = image.convert("RGB")
            image.thumbnail(max_size)
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageValidationError(f"Unreadable image: {e}")

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return PreviewHandle(f"data:image/jpeg;base64,{encoded}")


def ingest_image(image: ImageFile, max_bytes: int, preview_size: Tuple[int, int] = (400, 400)) -> PreviewHandle:
    """Validate a file and create its preview."""
    validate_image_file(image, max_bytes)
    preview = create_preview(image.data, preview_size)
    logger.info(f"Accepted image {image.filename} ({format_file_size(image.size)})")
    return preview
