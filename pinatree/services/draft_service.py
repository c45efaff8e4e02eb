"""
Registry of in-progress submission drafts.
"""
import logging
import time
import uuid
from typing import Callable, Dict, Optional

from pinatree.config import settings
from pinatree.core.boundaries import ReverseGeocoder
from pinatree.core.draft import SubmissionDraft
from pinatree.schemas.tree import Submitter

logger = logging.getLogger(__name__)


class DraftService:
    """
    Holds drafts between requests.

    Drafts live in process memory: all mutations happen on the event loop,
    one request at a time per draft. Drafts idle for longer than ``max_age``
    seconds are discarded, and once ``max_drafts`` is reached the least
    recently used draft makes room for a new one. Drafts with a submission
    in flight are never evicted.
    """

    def __init__(
        self,
        max_age: Optional[float] = None,
        max_drafts: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_age = settings.draft_ttl_seconds if max_age is None else max_age
        self.max_drafts = settings.max_drafts if max_drafts is None else max_drafts
        self._clock = clock
        self._drafts: Dict[str, SubmissionDraft] = {}
        self._last_used: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._drafts)

    def create(self, geocoder: ReverseGeocoder, submitter: Optional[Submitter] = None) -> SubmissionDraft:
        self.prune()
        self._make_room()

        draft = SubmissionDraft(
            draft_id=f"draft-{uuid.uuid4().hex[:12]}",
            geocoder=geocoder,
            submitter=submitter,
            strict_validation=settings.strict_validation,
            allow_typed_coordinates=settings.allow_typed_coordinates,
            max_upload_bytes=settings.max_upload_bytes,
            preview_size=settings.preview_max_size,
            lookup_timeout=settings.request_timeout_seconds,
        )
        self._drafts[draft.id] = draft
        self._last_used[draft.id] = self._clock()
        logger.info(f"Created draft {draft.id} for {submitter.id if submitter else 'guest'}")
        return draft

    def get(self, draft_id: str) -> Optional[SubmissionDraft]:
        self.prune()
        draft = self._drafts.get(draft_id)
        if draft is not None:
            self._last_used[draft_id] = self._clock()
        return draft

    def discard(self, draft_id: str) -> bool:
        draft = self._drafts.pop(draft_id, None)
        self._last_used.pop(draft_id, None)
        if draft is None:
            return False
        draft.discard()
        return True

    def discard_all(self) -> None:
        for draft_id in list(self._drafts):
            self.discard(draft_id)

    def prune(self) -> int:
        """Discard drafts idle for longer than max_age. Returns how many went."""
        cutoff = self._clock() - self.max_age
        expired = [
            draft_id for draft_id, used in self._last_used.items()
            if used < cutoff and not self._drafts[draft_id].is_submitting
        ]
        for draft_id in expired:
            self.discard(draft_id)
        if expired:
            logger.info(f"Discarded {len(expired)} idle drafts")
        return len(expired)

    def _make_room(self) -> None:
        while len(self._drafts) >= self.max_drafts:
            idle = [d for d in self._last_used if not self._drafts[d].is_submitting]
            if not idle:
                return
            oldest = min(idle, key=self._last_used.get)
            logger.info(f"Draft limit reached, discarding {oldest}")
            self.discard(oldest)


# Global instance
_draft_service = None


def get_draft_service() -> DraftService:
    """Dependency for FastAPI endpoints."""
    global _draft_service
    if _draft_service is None:
        _draft_service = DraftService()
    return _draft_service
