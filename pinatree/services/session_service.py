"""
User sessions from the packaged user fixtures.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional

from pinatree.schemas.session import SessionResponse, UserSession
from pinatree.schemas.tree import Submitter

logger = logging.getLogger(__name__)

USERS_FIXTURE = Path(__file__).resolve().parent.parent / "fixtures" / "users.json"


class SessionStore:

    def __init__(self, users: Optional[Iterable[UserSession]] = None, allow_guest_submissions: bool = True):
        self._users: Dict[str, UserSession] = {u.id: u for u in users or []}
        self.allow_guest_submissions = allow_guest_submissions

    @classmethod
    def from_fixture(cls, path: Optional[Path] = None, allow_guest_submissions: bool = True) -> "SessionStore":
        path = path or USERS_FIXTURE
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls([UserSession.model_validate(item) for item in data], allow_guest_submissions)

    def get(self, user_id: Optional[str]) -> Optional[UserSession]:
        if not user_id:
            return None
        user = self._users.get(user_id)
        if user is None:
            logger.debug(f"Unknown user id {user_id}, treating as guest")
        return user

    def can_add_tree(self, user: Optional[UserSession]) -> bool:
        return user is not None or self.allow_guest_submissions

    def describe(self, user: Optional[UserSession]) -> SessionResponse:
        return SessionResponse(user=user, is_guest=user is None, can_add_tree=self.can_add_tree(user))

    @staticmethod
    def to_submitter(user: Optional[UserSession]) -> Optional[Submitter]:
        if user is None:
            return None
        return Submitter(id=user.id, display_name=user.display_name)
