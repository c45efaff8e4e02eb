from fastapi import APIRouter, Depends
from typing import Optional

from pinatree.dependencies import get_current_user, get_session_store
from pinatree.schemas.session import SessionResponse, UserSession
from pinatree.services import SessionStore

router = APIRouter(prefix="/api/v1", tags=["session"])


@router.get("/session", response_model=SessionResponse)
async def get_session(
    user: Optional[UserSession] = Depends(get_current_user),
    sessions: SessionStore = Depends(get_session_store)
):
    """Who is signed in, and whether they may add a tree"""
    return sessions.describe(user)
