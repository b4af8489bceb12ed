"""
Streaming Orchestrator - drives one chat turn end-to-end.

A turn appends the user message and an empty assistant placeholder, streams
the completion into the placeholder, and then either keeps the answer or
removes the placeholder and reports the error. Both outcomes schedule an
auto-save of the settled buffer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from ..llm.base import CompletionProvider, CompletionRequest, Message
from ..llm.errors import ApiError, ValidationError
from ..utils import maybe_await
from .logging_config import LoggerAdapter
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_FIRST_TOKEN = "awaiting_first_token"
    STREAMING = "streaming"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_ERROR = "settled_error"


@dataclass
class TurnResult:
    """Outcome of one turn."""
    state: TurnState
    session_id: Optional[str]
    content: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.state == TurnState.SETTLED_SUCCESS


def describe_error(error: Exception) -> str:
    """User-facing text for a failed turn."""
    if isinstance(error, ApiError):
        return f"Error sending message: {error.status} - {error.message}"
    return f"Error sending message: {error}"


class StreamingOrchestrator:
    """Runs chat turns against a SessionStore and a completion client."""

    def __init__(
        self,
        store: SessionStore,
        client: CompletionProvider,
        notifier: Optional[Callable[[str], Any]] = None,
        max_tokens: Optional[int] = None,
        top_p: Optional[float] = None,
    ):
        self.store = store
        self.client = client
        self.notifier = notifier
        self.max_tokens = max_tokens
        self.top_p = top_p
        self._state = TurnState.IDLE

    @property
    def state(self) -> TurnState:
        return self._state

    def build_request(self, history: List[Message]) -> CompletionRequest:
        """Request for the given history, with the system prompt prepended when set."""
        messages = list(history)
        system_prompt = self.store.system_prompt.strip()
        if system_prompt:
            messages = [Message.system(system_prompt), *messages]
        return CompletionRequest(
            model=self.store.selected_model,
            messages=messages,
            temperature=self.store.temperature,
            max_tokens=self.max_tokens,
            top_p=self.top_p,
        )

    async def send_message(
        self,
        text: str,
        on_delta: Optional[Callable[[str], Any]] = None,
    ) -> TurnResult:
        """
        Run one turn for ``text``.

        Args:
            text: the user's input
            on_delta: optional observer called with each delta after it is applied

        Raises:
            ValidationError: blank input, or a turn is already streaming
        """
        content = (text or "").strip()
        if not content:
            raise ValidationError("Message is empty")
        if self.store.is_streaming:
            raise ValidationError("A response is already streaming")

        self.store.set_streaming(True)
        self.store.set_streaming_error("")
        self._state = TurnState.AWAITING_FIRST_TOKEN
        failure: List[Exception] = []

        try:
            if self.store.current_session_id is None:
                await self.store.create_session()
            session_id = self.store.current_session_id
            turn_log = LoggerAdapter(logger, {"session_id": session_id, "model": self.store.selected_model})

            # a save pending from the previous turn must not fire mid-stream
            await self.store.flush_save()
            self.store.append_message(Message.user(content))
            request = self.build_request(self.store.messages)
            self.store.append_message(Message.assistant(""))

            async def handle_delta(delta: str) -> None:
                if self._state == TurnState.AWAITING_FIRST_TOKEN:
                    self._state = TurnState.STREAMING
                    turn_log.debug("First token received")
                self.store.append_to_last_assistant(delta)
                if on_delta is not None:
                    await maybe_await(on_delta(delta))

            def handle_error(error: Exception) -> None:
                failure.append(error)

            def handle_done() -> None:
                turn_log.debug("Stream finished")

            self.client.set_credential(self.store.credential)
            turn_log.info(f"Turn started ({len(request.messages)} messages)")
            await self.client.stream_complete(request, handle_delta, handle_error, handle_done)
        finally:
            self.store.set_streaming(False)

        if failure:
            return await self._settle_error(session_id, failure[0], turn_log)

        self._state = TurnState.SETTLED_SUCCESS
        last = self.store.messages[-1]
        self.store.save_current_session()
        turn_log.info("Turn completed", extra={"extra_fields": {"content_length": len(last.content)}})
        return TurnResult(state=self._state, session_id=session_id, content=last.content)

    async def _settle_error(self, session_id: Optional[str], error: Exception,
                            turn_log: LoggerAdapter) -> TurnResult:
        # the user message stays; only the failed answer is rolled back
        self.store.pop_last_assistant()
        self.store.save_current_session()
        message = describe_error(error)
        self.store.set_streaming_error(message)
        self._state = TurnState.SETTLED_ERROR
        turn_log.warning(f"Turn failed: {error}")

        if self.notifier is not None:
            try:
                await maybe_await(self.notifier(message))
            except Exception:
                logger.exception("Notifier failed")

        return TurnResult(state=self._state, session_id=session_id, error=error)
