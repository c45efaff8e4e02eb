"""
Submission coordinator: upload the photo, then create the tree record.
"""
import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from pinatree.core.boundaries import ImageStore, TreeRepository
from pinatree.core.form import TreeForm
from pinatree.core.ingestion import ImageFile
from pinatree.errors import PersistenceError
from pinatree.schemas.location import Location
from pinatree.schemas.tree import Submitter, TreeCreate, TreeRecord

logger = logging.getLogger(__name__)


class SubmissionCoordinator:
    """
    Combines image + location + form fields into one persisted record.

    An image upload failure does not abort the submission: the record is
    created without an image. A persistence failure is raised as
    PersistenceError with a message fit for the user.
    """

    def __init__(self, images: ImageStore, trees: TreeRepository, timeout: float = 10.0):
        self.images = images
        self.trees = trees
        self.timeout = timeout

    async def upload_image(self, image: ImageFile) -> Optional[str]:
        """Durable URL for the image, or None if the upload failed."""
        try:
            return await asyncio.wait_for(
                self.images.upload(image.filename, image.content_type, image.data),
                self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Image upload timed out after {self.timeout}s, submitting without image")
        except Exception as e:
            logger.warning(f"Image upload failed, submitting without image: {e}")
        return None

    async def submit(
        self,
        form: TreeForm,
        location: Location,
        image: Optional[ImageFile] = None,
        submitter: Optional[Submitter] = None,
    ) -> TreeRecord:
        # Build the payload before uploading so a rejected record leaves no stored image
        try:
            payload = TreeCreate(
                name=(form.name or "").strip(),
                species=(form.species or "").strip(),
                description=(form.description or "").strip(),
                date_planted=form.date_planted,
                location=location,
                submitter=submitter,
            )
        except ValidationError as e:
            fields = ", ".join(sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]}))
            logger.error(f"Tree record rejected before saving: {e}")
            raise PersistenceError(f"Failed to create tree: invalid {fields or 'record'}")

        if image is not None:
            image_url = await self.upload_image(image)
            if image_url:
                payload = payload.model_copy(update={"image_url": image_url})

        try:
            record = await asyncio.wait_for(self.trees.create(payload), self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Creating tree timed out after {self.timeout}s")
            raise PersistenceError("Saving the tree timed out. Please try again.")
        except PersistenceError as e:
            logger.error(f"Failed to create tree: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to create tree: {e}")
            raise PersistenceError(f"Failed to create tree: {e}")

        logger.info(f"Created tree {record.id} ({record.name}) image={'yes' if payload.image_url else 'no'}")
        return record
