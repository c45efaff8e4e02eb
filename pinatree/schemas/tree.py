from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime

from pinatree.schemas.location import Location


class Submitter(BaseModel):
    id: str
    display_name: str


class TreeFields(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    species: str = Field(..., min_length=2, max_length=255)
    description: str = ""
    date_planted: date
    tags: List[str] = []
    status: str = Field("healthy", max_length=32)


class TreeCreate(TreeFields):
    location: Location
    image_url: Optional[str] = Field(None, max_length=512)
    submitter: Optional[Submitter] = None

    @field_validator("date_planted")
    @classmethod
    def not_in_future(cls, v):
        if v > date.today():
            raise ValueError("Date planted cannot be in the future")
        return v


class TreeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    species: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    date_planted: Optional[date] = None
    location: Optional[Location] = None
    image_url: Optional[str] = Field(None, max_length=512)
    tags: Optional[List[str]] = None
    status: Optional[str] = Field(None, max_length=32)

    @field_validator("date_planted")
    @classmethod
    def not_in_future(cls, v):
        if v is not None and v > date.today():
            raise ValueError("Date planted cannot be in the future")
        return v


class TreeRecord(TreeFields):
    id: str
    location: Location
    image_url: Optional[str] = None
    submitter: Optional[Submitter] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TreeQuery(BaseModel):
    """Filters for listing trees"""
    search: Optional[str] = None
    species: Optional[str] = None
    south: Optional[float] = Field(None, ge=-90, le=90)
    north: Optional[float] = Field(None, ge=-90, le=90)
    west: Optional[float] = Field(None, ge=-180, le=180)
    east: Optional[float] = Field(None, ge=-180, le=180)
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=500)

    @property
    def has_bounds(self) -> bool:
        return None not in (self.south, self.north, self.west, self.east)


class TreeListResponse(BaseModel):
    trees: List[TreeRecord]
    total: int
    page: int
    page_size: int
    total_pages: int


class NearbyTree(BaseModel):
    tree: TreeRecord
    distance_km: float
