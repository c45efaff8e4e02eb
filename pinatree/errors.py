"""Exceptions raised across the submission pipeline and its boundaries."""
from typing import Dict


class PinATreeError(Exception):
    """Base class for all application errors."""


class ImageValidationError(PinATreeError):
    """Selected file is not an acceptable image (type or size)."""


class FormValidationError(PinATreeError):
    """One or more form fields violate their constraints."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Validation failed: {fields}")


class ImageUploadError(PinATreeError):
    """Image upload boundary could not store the file."""


class PersistenceError(PinATreeError):
    """Persistence boundary rejected or failed to store a record."""


class TreeNotFoundError(PersistenceError):
    """Requested tree does not exist."""


class GeolocationDeniedError(PinATreeError):
    """Device geolocation was denied or is unavailable."""


class LocationEntryDisabledError(PinATreeError):
    """Typed coordinate entry is switched off."""


class SubmissionInProgressError(PinATreeError):
    """A submission for this draft is already in flight."""


class InvalidCoordinatesError(PinATreeError):
    """Coordinates are not numbers within latitude/longitude range."""


class DraftClosedError(PinATreeError):
    """Draft has already been submitted."""
