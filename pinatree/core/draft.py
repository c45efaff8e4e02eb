"""
Submission draft: the in-progress state of one tree submission.

Owns the upload state, the form values and the location resolver, and runs
the asynchronous steps (EXIF read, address lookup) without blocking the
caller. Stages:

    empty -> file-selected -> metadata-pending -> ready | needs-manual-location
          -> submitting -> submitted | failed   (failed -> submitting on retry)
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Set, Tuple

from pinatree.core.boundaries import DeviceGeolocation, ReverseGeocoder
from pinatree.core.coordinator import SubmissionCoordinator
from pinatree.core.exif import read_gps
from pinatree.core.form import FORM_FIELDS, TreeForm, validate_field, validate_form
from pinatree.core.ingestion import ImageFile, PreviewHandle, ingest_image
from pinatree.core.resolver import LocationResolver
from pinatree.errors import (
    DraftClosedError,
    FormValidationError,
    GeolocationDeniedError,
    ImageValidationError,
    InvalidCoordinatesError,
    LocationEntryDisabledError,
    PersistenceError,
    SubmissionInProgressError,
)
from pinatree.schemas.location import Location, LocationSource
from pinatree.schemas.tree import Submitter, TreeRecord

logger = logging.getLogger(__name__)

LOCATION_REQUIRED_MESSAGE = "Choose a location on the map, use your device location or enter coordinates"
GEOLOCATION_DENIED_MESSAGE = "Location access was denied. Click the map or enter coordinates instead."


class UploadStage(str, Enum):
    EMPTY = "empty"
    FILE_SELECTED = "file-selected"
    METADATA_PENDING = "metadata-pending"
    READY = "ready"
    NEEDS_MANUAL_LOCATION = "needs-manual-location"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass
class UploadState:
    file: Optional[ImageFile] = None
    preview: Optional[PreviewHandle] = None
    metadata_started: bool = False
    metadata_pending: bool = False
    extracted: Optional[Tuple[float, float]] = None
    errors: Dict[str, str] = field(default_factory=dict)

    def release_preview(self) -> None:
        if self.preview is not None:
            self.preview.release()
            self.preview = None

    def clear(self) -> None:
        self.release_preview()
        self.file = None
        self.metadata_started = False
        self.metadata_pending = False
        self.extracted = None
        self.errors.pop("photo", None)


class SubmissionDraft:

    def __init__(
        self,
        draft_id: str,
        geocoder: ReverseGeocoder,
        submitter: Optional[Submitter] = None,
        strict_validation: bool = True,
        allow_typed_coordinates: bool = True,
        max_upload_bytes: int = 10 * 1024 * 1024,
        preview_size: Tuple[int, int] = (400, 400),
        lookup_timeout: float = 10.0,
    ):
        self.id = draft_id
        self.geocoder = geocoder
        self.submitter = submitter
        self.strict_validation = strict_validation
        self.allow_typed_coordinates = allow_typed_coordinates
        self.max_upload_bytes = max_upload_bytes
        self.preview_size = preview_size
        self.lookup_timeout = lookup_timeout

        self.form = TreeForm()
        self.upload = UploadState()
        self.resolver = LocationResolver()
        self.record: Optional[TreeRecord] = None
        self.error: Optional[str] = None

        self._submitting = False
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------ state

    @property
    def location(self) -> Optional[Location]:
        return self.resolver.location

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self.upload.errors)

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def is_submit_eligible(self) -> bool:
        if self.location is None:
            return False
        return not validate_form(self.form, strict=self.strict_validation)

    @property
    def stage(self) -> UploadStage:
        if self._submitting:
            return UploadStage.SUBMITTING
        if self.record is not None:
            return UploadStage.SUBMITTED
        if self.error is not None:
            return UploadStage.FAILED
        if self.upload.file is None:
            return UploadStage.EMPTY
        if not self.upload.metadata_started:
            return UploadStage.FILE_SELECTED
        if self.upload.metadata_pending:
            return UploadStage.METADATA_PENDING
        if self.location is not None:
            return UploadStage.READY
        return UploadStage.NEEDS_MANUAL_LOCATION

    # ------------------------------------------------------------------ photo

    def select_photo(self, image: ImageFile) -> None:
        """
        Accept a new photo and start reading its GPS tags in the background.

        On rejection the error is recorded on the ``photo`` field, the
        previous photo stays selected and ImageValidationError is raised.
        """
        self._ensure_open()
        try:
            preview = ingest_image(image, self.max_upload_bytes, self.preview_size)
        except ImageValidationError as e:
            self.upload.errors["photo"] = str(e)
            raise

        self.upload.release_preview()
        self.upload.file = image
        self.upload.preview = preview
        self.upload.extracted = None
        self.upload.errors.pop("photo", None)

        generation = self.resolver.begin_file()
        self.upload.metadata_started = True
        self._edited()
        self.upload.metadata_pending = True
        self._spawn(self._extract(generation, image.data))

    def remove_photo(self) -> None:
        """Drop the photo; a location extracted from it goes with it."""
        self._ensure_open()
        self._edited()
        self.upload.clear()
        if self.resolver.drop_file():
            logger.info(f"Draft {self.id}: cleared location extracted from removed photo")

    async def _extract(self, generation: int, data: bytes) -> None:
        try:
            coordinates = await read_gps(data)
        except Exception as e:
            logger.warning(f"Draft {self.id}: GPS extraction failed: {e}")
            coordinates = None

        if generation != self.resolver.generation:
            logger.debug(f"Draft {self.id}: ignoring extraction for a replaced photo")
            return

        self.upload.metadata_pending = False
        self.upload.extracted = coordinates
        if self.resolver.apply_extraction(generation, coordinates):
            self._lookup_address()

    # --------------------------------------------------------------- location

    def set_location(self, source: LocationSource, latitude, longitude) -> Location:
        """Set the location from a map click, device fix or typed coordinates."""
        self._ensure_open()
        if source == LocationSource.TYPED and not self.allow_typed_coordinates:
            raise LocationEntryDisabledError("Typed coordinates are disabled; use the map or device location")
        try:
            location = self.resolver.set_manual(latitude, longitude, source)
        except InvalidCoordinatesError as e:
            self.upload.errors["location"] = str(e)
            raise

        self._edited()
        self.upload.errors.pop("location", None)
        self._lookup_address()
        return location

    async def locate_device(self, device: DeviceGeolocation) -> Optional[Location]:
        """
        Ask the device for a one-shot fix.

        A denial is a soft error on the ``location`` field; the current
        location is kept.
        """
        self._ensure_open()
        try:
            latitude, longitude = await device.current_position()
        except GeolocationDeniedError as e:
            self.upload.errors["location"] = str(e) or GEOLOCATION_DENIED_MESSAGE
            logger.info(f"Draft {self.id}: device geolocation unavailable: {e}")
            return None
        return self.set_location(LocationSource.DEVICE, latitude, longitude)

    def _lookup_address(self) -> None:
        location = self.resolver.location
        if location is None:
            return
        self._spawn(self._resolve_address(self.resolver.revision, location.latitude, location.longitude))

    async def _resolve_address(self, revision: int, latitude: float, longitude: float) -> None:
        try:
            address = await asyncio.wait_for(self.geocoder.reverse(latitude, longitude), self.lookup_timeout)
        except Exception as e:
            logger.warning(f"Draft {self.id}: address lookup failed: {e}")
            return
        self.resolver.apply_address(revision, address)

    # ------------------------------------------------------------------- form

    def update_fields(self, **changes) -> Dict[str, str]:
        """Change form values and re-validate just those fields."""
        self._ensure_open()
        self.form.update(**changes)
        self._edited()
        for name in changes:
            message = validate_field(self.form, name, strict=self.strict_validation)
            if message:
                self.upload.errors[name] = message
            else:
                self.upload.errors.pop(name, None)
        return {k: v for k, v in self.upload.errors.items() if k in changes}

    def validate(self) -> Dict[str, str]:
        """Validate everything; returns all violations at once."""
        errors = validate_form(self.form, strict=self.strict_validation)
        for name in FORM_FIELDS:
            if name in errors:
                self.upload.errors[name] = errors[name]
            else:
                self.upload.errors.pop(name, None)

        if self.location is None:
            errors["location"] = self.upload.errors.get("location") or LOCATION_REQUIRED_MESSAGE
            self.upload.errors["location"] = errors["location"]
        return errors

    # ----------------------------------------------------------------- submit

    async def submit(self, coordinator: SubmissionCoordinator) -> TreeRecord:
        """
        Submit the draft.

        Raises FormValidationError (coordinator not invoked) when anything is
        missing, PersistenceError when saving fails. Field values are kept on
        failure so a retry needs no re-entry.
        """
        if self._submitting:
            raise SubmissionInProgressError("Submission already in progress")
        self._ensure_open()

        errors = self.validate()
        if errors:
            raise FormValidationError(errors)

        self._submitting = True
        self.error = None
        try:
            record = await coordinator.submit(
                self.form, self.location, self.upload.file, self.submitter
            )
        except PersistenceError as e:
            self.error = str(e)
            raise
        except Exception as e:
            logger.error(f"Draft {self.id}: unexpected submission failure: {e}")
            self.error = f"Failed to create tree: {e}"
            raise PersistenceError(self.error) from e
        finally:
            self._submitting = False

        self.record = record
        self.upload.clear()
        return record

    # -------------------------------------------------------------- lifecycle

    async def wait_idle(self) -> None:
        """Wait for background extraction and address lookups to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def discard(self) -> None:
        """Tear down: cancel pending work and release the preview."""
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.upload.clear()
        self.resolver.clear()

    def _edited(self) -> None:
        """A failed submission no longer describes the edited draft."""
        self.error = None

    def _ensure_open(self) -> None:
        if self.record is not None:
            raise DraftClosedError("This tree has already been submitted")

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
