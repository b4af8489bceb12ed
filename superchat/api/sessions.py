"""
Session API endpoints - chat history and the active conversation.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, status

from ..core.session_store import SessionStore
from ..models import ActiveConversation, SessionList, SessionSummary
from ..utils import format_session_date
from .deps import ensure_idle, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def active_conversation(store: SessionStore) -> ActiveConversation:
    """Snapshot of what the chat area shows."""
    current = store.current_session
    return ActiveConversation(
        current_session_id=store.current_session_id,
        title=current.title if current else None,
        selected_model=store.selected_model,
        messages=store.messages,
        is_streaming=store.is_streaming,
        streaming_error_message=store.streaming_error_message,
        title_generating=store.title_generating,
        hydrated=store.hydrated,
    )


@router.get("", response_model=SessionList)
async def list_sessions(store: SessionStore = Depends(get_store)):
    """
    List chat history, most recently updated first.

    Returns:
        SessionList with a short display date per session
    """
    sessions = [
        SessionSummary(
            id=session.id,
            title=session.title,
            model=session.model,
            created_at=session.created_at,
            updated_at=session.updated_at,
            message_count=len(session.messages),
            display_date=format_session_date(session.updated_at),
            is_current=session.id == store.current_session_id,
        )
        for session in store.sorted_sessions()
    ]
    return SessionList(sessions=sessions, current_session_id=store.current_session_id)


@router.post("", response_model=ActiveConversation, status_code=status.HTTP_201_CREATED)
async def create_session(store: SessionStore = Depends(get_store)):
    """Start a new, empty chat and make it current."""
    ensure_idle(store)
    await store.create_session()
    return active_conversation(store)


@router.get("/current", response_model=ActiveConversation)
async def get_current_session(store: SessionStore = Depends(get_store)):
    return active_conversation(store)


@router.post("/{session_id}/load", response_model=ActiveConversation)
async def load_session(session_id: str, store: SessionStore = Depends(get_store)):
    """Make a stored session current."""
    ensure_idle(store)
    if not await store.load_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}"
        )
    return active_conversation(store)


@router.delete("/{session_id}")
async def delete_session(session_id: str, store: SessionStore = Depends(get_store)):
    """
    Delete a session.

    Deleting the current session clears the chat area.
    """
    if session_id == store.current_session_id:
        ensure_idle(store)
    if not await store.delete_session(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session not found: {session_id}"
        )
    return {"message": "Session deleted", "sessionId": session_id}
