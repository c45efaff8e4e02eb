from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
import logging

from pinatree.config import settings
from pinatree.core.boundaries import ImageStore
from pinatree.core.exif import read_gps
from pinatree.core.ingestion import ImageFile, format_file_size, validate_image_file
from pinatree.dependencies import get_image_store
from pinatree.errors import ImageUploadError, ImageValidationError
from pinatree.schemas.upload import ExifResponse, ImageUploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/uploads", tags=["uploads"])


async def _read_upload(file: UploadFile) -> ImageFile:
    image = ImageFile(
        filename=file.filename or "upload",
        content_type=file.content_type or "",
        data=await file.read(),
    )
    try:
        validate_image_file(image, settings.max_upload_bytes)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return image


@router.post("/image", response_model=ImageUploadResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    images: ImageStore = Depends(get_image_store)
):
    """Store a tree photo and return its public URL"""
    image = await _read_upload(file)
    try:
        image_url = await images.upload(image.filename, image.content_type, image.data)
    except ImageUploadError as e:
        logger.error(f"Error uploading {image.filename}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return ImageUploadResponse(
        image_url=image_url,
        filename=image.filename,
        size_label=format_file_size(image.size),
    )


@router.post("/exif", response_model=ExifResponse)
async def read_exif(file: UploadFile = File(...)):
    """Read GPS coordinates from a photo's EXIF metadata"""
    image = await _read_upload(file)
    coordinates = await read_gps(image.data)
    if coordinates is None:
        return ExifResponse(
            has_gps=False,
            message="No GPS data found in this photo. Choose the location on the map."
        )

    latitude, longitude = coordinates
    return ExifResponse(
        has_gps=True,
        latitude=latitude,
        longitude=longitude,
        message="Location found in photo"
    )
