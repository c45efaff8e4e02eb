from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date

from pinatree.core.draft import SubmissionDraft
from pinatree.core.ingestion import format_file_size
from pinatree.schemas.location import Location, LocationSource
from pinatree.schemas.tree import TreeRecord


class DraftFields(BaseModel):
    name: Optional[str] = None
    species: Optional[str] = None
    description: Optional[str] = None
    date_planted: Optional[date] = None


class LocationInput(BaseModel):
    """A location chosen by the user, or a failed device geolocation."""
    source: LocationSource
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    denied: bool = False
    message: Optional[str] = None


class PhotoInfo(BaseModel):
    filename: str
    content_type: str
    size: int
    size_label: str
    preview_url: Optional[str] = None


class DraftResponse(BaseModel):
    id: str
    stage: str
    fields: DraftFields
    photo: Optional[PhotoInfo] = None
    extracted_gps: Optional[List[float]] = None
    location: Optional[Location] = None
    display_address: Optional[str] = None
    errors: Dict[str, str] = {}
    submit_eligible: bool
    error: Optional[str] = None
    record: Optional[TreeRecord] = None

    @classmethod
    def from_draft(cls, draft: SubmissionDraft) -> "DraftResponse":
        upload = draft.upload
        photo = None
        if upload.file is not None:
            photo = PhotoInfo(
                filename=upload.file.filename,
                content_type=upload.file.content_type,
                size=upload.file.size,
                size_label=format_file_size(upload.file.size),
                preview_url=upload.preview.url if upload.preview else None,
            )
        location = draft.location
        return cls(
            id=draft.id,
            stage=draft.stage.value,
            fields=DraftFields(**draft.form.to_dict()),
            photo=photo,
            extracted_gps=list(upload.extracted) if upload.extracted else None,
            location=location,
            display_address=location.display_address if location else None,
            errors=draft.errors,
            submit_eligible=draft.is_submit_eligible,
            error=draft.error,
            record=draft.record,
        )
