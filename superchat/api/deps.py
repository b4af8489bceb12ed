"""
Request dependencies - components wired up by the application lifespan.
"""

from fastapi import HTTPException, Request, status

from ..core.orchestrator import StreamingOrchestrator
from ..core.session_store import SessionStore
from ..llm.base import CompletionProvider


def get_store(request: Request) -> SessionStore:
    """The hydrated session store for this application."""
    store = getattr(request.app.state, "store", None)
    if store is None or not store.hydrated:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session store is not ready"
        )
    return store


def get_client(request: Request) -> CompletionProvider:
    return request.app.state.client


def get_orchestrator(request: Request) -> StreamingOrchestrator:
    return request.app.state.orchestrator


def ensure_idle(store: SessionStore) -> None:
    """Reject changes to the active conversation while a turn is streaming."""
    if store.is_streaming:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A response is already streaming"
        )
