import io
import os
import tempfile

import pytest
from PIL import Image

# Settings are read at import time; point them at throwaway storage first.
_TMP = tempfile.mkdtemp(prefix="pinatree-tests-")
os.environ.setdefault("PINATREE_DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_TMP, 'test.db')}")
os.environ.setdefault("PINATREE_UPLOAD_DIR", os.path.join(_TMP, "uploads"))
os.environ.setdefault("PINATREE_PERSISTENCE_BACKEND", "database")
os.environ.setdefault("PINATREE_IMAGE_BACKEND", "local")
os.environ.setdefault("PINATREE_GEOCODER", "none")


def jpeg_bytes(gps=None, size=(64, 48), color=(34, 139, 34)) -> bytes:
    """Small JPEG, optionally carrying a GPS IFD such as {1: "N", 2: (51.0, 30.0, 0.0), ...}."""
    image = Image.new("RGB", size, color)
    buffer = io.BytesIO()
    if gps:
        exif = Image.Exif()
        exif[0x8825] = gps
        image.save(buffer, format="JPEG", exif=exif)
    else:
        image.save(buffer, format="JPEG")
    return buffer.getvalue()


LONDON_GPS = {1: "N", 2: (51.0, 30.0, 0.0), 3: "W", 4: (0.0, 7.0, 30.0)}


@pytest.fixture
def plain_jpeg():
    return jpeg_bytes()


@pytest.fixture
def gps_jpeg():
    """JPEG tagged at 51.5 N, 0.125 W."""
    return jpeg_bytes(LONDON_GPS)
