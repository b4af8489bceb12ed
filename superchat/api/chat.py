"""
Chat API endpoints - send a message and stream the answer as Server-Sent Events.

Event payloads (one ``data:`` line each):
    {"type": "delta", "content": "..."}
    {"type": "done", "sessionId": "...", "content": "<full answer>"}
    {"type": "error", "error": "...", "sessionId": "..."}
"""

import asyncio
import json
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from typing import Any, Dict, Optional, Set

from ..core.orchestrator import StreamingOrchestrator
from ..core.session_store import SessionStore
from ..llm.errors import ValidationError
from ..models import ActiveConversation, ChatRequest
from .deps import ensure_idle, get_orchestrator, get_store
from .sessions import active_conversation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])

# running turns keep going after a client disconnects
_turn_tasks: Set[asyncio.Task] = set()


def _sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.post("/message")
async def send_message(
    message: ChatRequest,
    store: SessionStore = Depends(get_store),
    orchestrator: StreamingOrchestrator = Depends(get_orchestrator),
):
    """
    Send a message in the active conversation and stream the answer.

    Starts a new session when none is current.

    Returns:
        StreamingResponse of ``delta`` events followed by ``done`` or ``error``
    """
    if not message.content.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Message is empty"
        )
    ensure_idle(store)

    queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()

    def on_delta(delta: str) -> None:
        queue.put_nowait({"type": "delta", "content": delta})

    async def run_turn() -> None:
        try:
            result = await orchestrator.send_message(message.content, on_delta=on_delta)
            if result.ok:
                queue.put_nowait({"type": "done", "sessionId": result.session_id, "content": result.content})
            else:
                queue.put_nowait({
                    "type": "error",
                    "error": store.streaming_error_message,
                    "sessionId": result.session_id,
                })
        except ValidationError as e:
            # lost the race against another turn
            queue.put_nowait({"type": "error", "error": str(e)})
        except Exception as e:
            logger.error(f"Turn crashed: {e}", exc_info=True)
            queue.put_nowait({"type": "error", "error": f"Error sending message: {e}"})
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run_turn())
    _turn_tasks.add(task)
    task.add_done_callback(_turn_tasks.discard)

    async def event_generator():
        while True:
            event = await queue.get()
            if event is None:
                return
            yield _sse(event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.post("/clear", response_model=ActiveConversation)
async def clear_chat(store: SessionStore = Depends(get_store)):
    """Empty the chat area; stored sessions are kept."""
    ensure_idle(store)
    await store.clear_messages()
    return active_conversation(store)
