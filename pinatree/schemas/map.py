from pydantic import BaseModel
from typing import Optional


class MarkerSpec(BaseModel):
    """One map pin and the content of its detail popup."""
    id: str
    latitude: float
    longitude: float
    name: str
    species: str
    image_url: Optional[str] = None
    submitter: Optional[str] = None
    popup_html: str
