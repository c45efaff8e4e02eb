"""
Guided tree submission: photo, location, details, submit.

A draft is created first and then edited step by step. Reading the photo's
GPS tags and looking up the address run in the background; pass
``wait=true`` when fetching a draft to see their results.
"""
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from typing import Optional
import logging

from pinatree.core.boundaries import ReverseGeocoder
from pinatree.core.coordinator import SubmissionCoordinator
from pinatree.core.draft import SubmissionDraft
from pinatree.core.ingestion import ImageFile
from pinatree.dependencies import get_coordinator, get_current_user, get_geocoder, get_session_store
from pinatree.errors import (
    DraftClosedError,
    FormValidationError,
    ImageValidationError,
    InvalidCoordinatesError,
    LocationEntryDisabledError,
    PersistenceError,
    SubmissionInProgressError,
)
from pinatree.schemas.location import LocationSource
from pinatree.schemas.session import UserSession
from pinatree.schemas.submission import DraftFields, DraftResponse, LocationInput
from pinatree.services import DraftService, ReportedPosition, SessionStore, get_draft_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/submissions", tags=["submissions"])


def _get_draft(drafts: DraftService, draft_id: str) -> SubmissionDraft:
    draft = drafts.get(draft_id)
    if draft is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    return draft


@router.post("", response_model=DraftResponse, status_code=201)
async def create_submission(
    user: Optional[UserSession] = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
    drafts: DraftService = Depends(get_draft_service)
):
    """Start a new tree submission"""
    if not sessions.can_add_tree(user):
        raise HTTPException(status_code=401, detail="Sign in to add a tree")

    draft = drafts.create(geocoder, sessions.to_submitter(user))
    return DraftResponse.from_draft(draft)


@router.get("/{draft_id}", response_model=DraftResponse)
async def get_submission(
    draft_id: str,
    wait: bool = False,
    drafts: DraftService = Depends(get_draft_service)
):
    """Current state of a submission"""
    draft = _get_draft(drafts, draft_id)
    if wait:
        await draft.wait_idle()
    return DraftResponse.from_draft(draft)


@router.put("/{draft_id}/photo", response_model=DraftResponse)
async def select_photo(
    draft_id: str,
    file: UploadFile = File(...),
    drafts: DraftService = Depends(get_draft_service)
):
    """Select (or replace) the photo; its GPS tags are read in the background"""
    draft = _get_draft(drafts, draft_id)
    image = ImageFile(
        filename=file.filename or "upload",
        content_type=file.content_type or "",
        data=await file.read(),
    )
    try:
        draft.select_photo(image)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DraftClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Draft {draft_id}: selected {image.filename} ({image.size} bytes)")
    return DraftResponse.from_draft(draft)


@router.delete("/{draft_id}/photo", response_model=DraftResponse)
async def remove_photo(
    draft_id: str,
    drafts: DraftService = Depends(get_draft_service)
):
    """Remove the photo"""
    draft = _get_draft(drafts, draft_id)
    try:
        draft.remove_photo()
    except DraftClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DraftResponse.from_draft(draft)


@router.patch("/{draft_id}/fields", response_model=DraftResponse)
async def update_fields(
    draft_id: str,
    fields: DraftFields,
    drafts: DraftService = Depends(get_draft_service)
):
    """Change tree details; changed fields are validated immediately"""
    draft = _get_draft(drafts, draft_id)
    changes = fields.model_dump(exclude_unset=True)
    try:
        draft.update_fields(**changes)
    except DraftClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DraftResponse.from_draft(draft)


@router.post("/{draft_id}/location", response_model=DraftResponse)
async def set_location(
    draft_id: str,
    location: LocationInput,
    drafts: DraftService = Depends(get_draft_service)
):
    """Set the location from a map click, the device, or typed coordinates"""
    draft = _get_draft(drafts, draft_id)
    if location.source == LocationSource.EXTRACTED:
        raise HTTPException(status_code=400, detail="Extracted locations come from the photo")

    try:
        if location.source == LocationSource.DEVICE:
            device = ReportedPosition(
                location.latitude, location.longitude, location.denied, location.message
            )
            await draft.locate_device(device)
        else:
            draft.set_location(location.source, location.latitude, location.longitude)
    except InvalidCoordinatesError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LocationEntryDisabledError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except DraftClosedError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return DraftResponse.from_draft(draft)


@router.post("/{draft_id}/submit", response_model=DraftResponse)
async def submit(
    draft_id: str,
    drafts: DraftService = Depends(get_draft_service),
    coordinator: SubmissionCoordinator = Depends(get_coordinator)
):
    """Validate and save the tree. On failure the draft keeps its values for a retry."""
    draft = _get_draft(drafts, draft_id)
    try:
        record = await draft.submit(coordinator)
    except FormValidationError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "errors": e.errors})
    except (SubmissionInProgressError, DraftClosedError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Draft {draft_id}: submission failed: {e}")
        raise HTTPException(
            status_code=502,
            detail={"message": str(e), "draft": DraftResponse.from_draft(draft).model_dump(mode="json")}
        )

    logger.info(f"Draft {draft_id}: submitted as tree {record.id}")
    return DraftResponse.from_draft(draft)


@router.delete("/{draft_id}", status_code=204)
async def discard_submission(
    draft_id: str,
    drafts: DraftService = Depends(get_draft_service)
):
    """Abandon a submission"""
    if not drafts.discard(draft_id):
        raise HTTPException(status_code=404, detail="Submission not found")
