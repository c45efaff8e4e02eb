from pydantic import BaseModel
from typing import Optional


class ImageUploadResponse(BaseModel):
    image_url: str
    filename: str
    size_label: str


class ExifResponse(BaseModel):
    has_gps: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    message: str
