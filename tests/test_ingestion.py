import pytest

from pinatree.core.ingestion import (
    ImageFile,
    create_preview,
    format_file_size,
    ingest_image,
    validate_image_file,
)
from pinatree.errors import ImageValidationError

MAX_BYTES = 10 * 1024 * 1024


def test_format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(500) == "500 Bytes"
    assert format_file_size(1024) == "1 KB"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(10 * 1024 * 1024) == "10 MB"


def test_rejects_non_image_content_type(plain_jpeg):
    with pytest.raises(ImageValidationError, match="File must be an image"):
        validate_image_file(ImageFile("notes.txt", "text/plain", plain_jpeg), MAX_BYTES)


def test_rejects_empty_file():
    with pytest.raises(ImageValidationError, match="File is empty"):
        validate_image_file(ImageFile("tree.jpg", "image/jpeg", b""), MAX_BYTES)


def test_size_limit_is_inclusive():
    validate_image_file(ImageFile("tree.jpg", "image/jpeg", b"x" * 1024), 1024)
    with pytest.raises(ImageValidationError, match="File too large. Maximum size: 1 KB"):
        validate_image_file(ImageFile("tree.jpg", "image/jpeg", b"x" * 1025), 1024)


def test_preview_is_data_url_and_releasable(plain_jpeg):
    preview = create_preview(plain_jpeg, (32, 32))
    assert preview.url.startswith("data:image/jpeg;base64,")
    assert not preview.released

    preview.release()
    assert preview.released
    assert preview.url is None


def test_unreadable_image_is_rejected():
    with pytest.raises(ImageValidationError, match="Unreadable image"):
        ingest_image(ImageFile("tree.jpg", "image/jpeg", b"not really a jpeg"), MAX_BYTES)


def test_ingest_image(plain_jpeg):
    preview = ingest_image(ImageFile("tree.jpg", "image/jpeg", plain_jpeg), MAX_BYTES)
    assert preview.url
