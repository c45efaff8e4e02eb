from pydantic import BaseModel
from typing import Optional


class UserSession(BaseModel):
    id: str
    display_name: str
    email: str


class SessionResponse(BaseModel):
    user: Optional[UserSession] = None
    is_guest: bool
    can_add_tree: bool
