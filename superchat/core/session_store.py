"""
Session Store - owns the chat session collection and the active buffer.

The store is a plain object constructed with its collaborators; there is no
process-wide default instance. All changes to the collection go through its
methods and replace the collection wholesale. The only in-place edit is
append_to_last_assistant, which grows the trailing assistant message of an
in-flight turn.

Persisted: selected model, credential, temperature, system prompt, the
session collection and the current session id. The active buffer is only
persisted by reconciling it into its session record (save_current_session).
"""

import logging
import secrets
import string
import time
from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..llm.base import Message, UNUSED_CREDENTIAL
from ..llm.errors import ValidationError
from ..models.session import DEFAULT_TITLE, ChatSession, PersistedState
from ..storage.interface import StorageInterface
from .debounce import Debouncer
from .titles import TitleSynthesizer, fallback_title

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "superchat-storage"
DEFAULT_MODEL = "deepseek-r1-0528"
DEFAULT_TEMPERATURE = 0.7
MAX_SESSIONS = 50
AUTOSAVE_DEBOUNCE_MS = 1000

_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    return int(time.time() * 1000)


def _copy_messages(messages: List[Message]) -> List[Message]:
    return [Message(role=m.role, content=m.content) for m in messages]


class SessionStore:
    """State container for chat sessions, preferences and the active buffer."""

    def __init__(
        self,
        storage: StorageInterface,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        title_synthesizer: Optional[TitleSynthesizer] = None,
        default_model: str = DEFAULT_MODEL,
        default_temperature: float = DEFAULT_TEMPERATURE,
        max_sessions: int = MAX_SESSIONS,
        autosave_debounce_ms: int = AUTOSAVE_DEBOUNCE_MS,
        clock: Callable[[], int] = now_ms,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.storage = storage
        self.storage_key = storage_key
        self.title_synthesizer = title_synthesizer
        self.max_sessions = max_sessions
        self._clock = clock
        self._autosave = Debouncer(autosave_debounce_ms, name="autosave")

        # persisted
        self.selected_model = default_model
        self.credential = ""
        self.temperature = default_temperature
        self.system_prompt = ""
        self._sessions: List[ChatSession] = []
        self.current_session_id: Optional[str] = None

        # view state
        self._messages: List[Message] = []
        self.available_models: List[str] = []
        self.is_streaming = False
        self.streaming_error_message = ""
        self.hydrated = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def chat_sessions(self) -> List[ChatSession]:
        return list(self._sessions)

    @property
    def messages(self) -> List[Message]:
        """Snapshot of the active buffer (the Message objects are shared)."""
        return list(self._messages)

    @property
    def autosave(self) -> Debouncer:
        return self._autosave

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return next((s for s in self._sessions if s.id == session_id), None)

    @property
    def current_session(self) -> Optional[ChatSession]:
        if self.current_session_id is None:
            return None
        return self.get_session(self.current_session_id)

    def sorted_sessions(self) -> List[ChatSession]:
        """Sessions ordered for the history list, most recently updated first."""
        return sorted(self._sessions, key=lambda s: s.updated_at, reverse=True)

    @property
    def has_credential(self) -> bool:
        return bool(self.credential) and self.credential != UNUSED_CREDENTIAL

    @property
    def title_generating(self) -> bool:
        """True while an AI title is waiting for its window or in flight."""
        return self.title_synthesizer is not None and self.title_synthesizer.debouncer.busy

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _new_session_id(self) -> str:
        while True:
            suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
            session_id = f"session-{self._clock()}-{suffix}"
            if self.get_session(session_id) is None:
                return session_id

    async def create_session(self) -> str:
        """Start an empty conversation, make it current and return its id."""
        # reconcile the outgoing conversation before the buffer is cleared
        await self._autosave.flush()

        now = self._clock()
        session = ChatSession(
            id=self._new_session_id(),
            title=DEFAULT_TITLE,
            messages=[],
            created_at=now,
            updated_at=now,
            model=self.selected_model,
        )
        self._sessions = [session, *self._sessions]
        self.current_session_id = session.id
        self._messages = []
        self.evict_excess()
        await self._persist()

        logger.info(
            f"Session created: {session.id}",
            extra={"extra_fields": {"session_id": session.id, "session_count": len(self._sessions)}}
        )
        return session.id

    def save_current_session(self, delay_ms: Optional[int] = None) -> None:
        """
        Schedule reconciliation of the active buffer into its session record.

        Debounced: calls inside the window collapse into one write.
        Requires a running event loop.
        """
        self._autosave.schedule(self._reconcile_current_session, delay_ms=delay_ms)

    async def flush_save(self) -> None:
        """Run a pending save immediately and wait for it."""
        await self._autosave.flush()

    async def _reconcile_current_session(self) -> None:
        if not self.current_session_id or not self._messages:
            return

        index = next((i for i, s in enumerate(self._sessions) if s.id == self.current_session_id), None)
        if index is None:
            return

        session = self._sessions[index]
        messages = _copy_messages(self._messages)
        title = session.title
        if title == DEFAULT_TITLE:
            title = fallback_title(messages)

        if (messages == session.messages and title == session.title
                and self.selected_model == session.model):
            logger.debug(f"Session {session.id} unchanged, skipping save")
            return

        updated = session.model_copy(update={
            "messages": messages,
            "title": title,
            "updated_at": max(self._clock(), session.created_at),
            "model": self.selected_model,
        })
        self._sessions = [*self._sessions[:index], updated, *self._sessions[index + 1:]]
        await self._persist()

        logger.debug(
            f"Session saved: {updated.id}",
            extra={"extra_fields": {"session_id": updated.id, "message_count": len(messages)}}
        )

        if self._should_synthesize_title(updated):
            self.title_synthesizer.debounced_synthesize(
                messages,
                self.credential,
                lambda new_title, sid=updated.id: self._apply_title(sid, new_title),
            )

    def _should_synthesize_title(self, session: ChatSession) -> bool:
        """AI titles replace only provisional titles: the placeholder or the heuristic one."""
        if self.title_synthesizer is None or not self.has_credential:
            return False
        if len(session.messages) < 2:
            return False
        return session.title in (DEFAULT_TITLE, fallback_title(session.messages))

    async def _apply_title(self, session_id: str, title: str) -> None:
        index = next((i for i, s in enumerate(self._sessions) if s.id == session_id), None)
        if index is None:
            logger.debug(f"Session {session_id} deleted before its title arrived")
            return

        session = self._sessions[index]
        if not title or title == session.title:
            return

        updated = session.model_copy(update={
            "title": title,
            "updated_at": max(self._clock(), session.updated_at),
        })
        self._sessions = [*self._sessions[:index], updated, *self._sessions[index + 1:]]
        await self._persist()
        logger.info(f"Session titled: {session_id} -> {title!r}")

    async def load_session(self, session_id: str) -> bool:
        """Make a stored session current. Unknown ids are ignored."""
        await self._autosave.flush()

        session = self.get_session(session_id)
        if session is None:
            logger.debug(f"load_session: unknown id {session_id}")
            return False

        self.current_session_id = session.id
        self._messages = _copy_messages(session.messages)
        self.selected_model = session.model
        await self._persist()
        return True

    async def delete_session(self, session_id: str) -> bool:
        """Remove a session; deleting the current one also clears the buffer."""
        if self.get_session(session_id) is None:
            return False

        if session_id == self.current_session_id:
            self._autosave.cancel()
            self.current_session_id = None
            self._messages = []

        self._sessions = [s for s in self._sessions if s.id != session_id]
        await self._persist()
        logger.info(f"Session deleted: {session_id}")
        return True

    def evict_excess(self) -> List[str]:
        """
        Keep only the ``max_sessions`` most recently updated sessions.

        Returns:
            Ids of the evicted sessions
        """
        if len(self._sessions) <= self.max_sessions:
            return []

        ranked = sorted(self._sessions, key=lambda s: s.updated_at, reverse=True)
        kept, evicted = ranked[:self.max_sessions], ranked[self.max_sessions:]
        self._sessions = kept

        evicted_ids = [s.id for s in evicted]
        if self.current_session_id in evicted_ids:
            self.current_session_id = None
            self._messages = []

        logger.info(
            f"Evicted {len(evicted_ids)} sessions over the limit of {self.max_sessions}",
            extra={"extra_fields": {"evicted": evicted_ids}}
        )
        return evicted_ids

    async def clear_messages(self) -> None:
        """Empty the chat area; the next message starts a new session."""
        await self._autosave.flush()
        self._messages = []
        self.current_session_id = None
        await self._persist()

    # ------------------------------------------------------------------
    # Active buffer (not persisted directly)
    # ------------------------------------------------------------------

    def append_message(self, message: Message) -> None:
        self._messages = [*self._messages, message]

    def append_to_last_assistant(self, delta: str) -> None:
        """Grow the trailing assistant message in place."""
        if not self._messages or self._messages[-1].role != "assistant":
            raise ValidationError("No assistant message to append to")
        self._messages[-1].content += delta

    def pop_last_assistant(self) -> Optional[Message]:
        """Drop a trailing assistant message, returning it."""
        if not self._messages or self._messages[-1].role != "assistant":
            return None
        removed = self._messages[-1]
        self._messages = self._messages[:-1]
        return removed

    def set_streaming(self, is_streaming: bool) -> None:
        self.is_streaming = is_streaming

    def set_streaming_error(self, message: str) -> None:
        self.streaming_error_message = message

    def set_available_models(self, models: List[str]) -> None:
        self.available_models = list(models)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def set_selected_model(self, model: str) -> None:
        if not model:
            raise ValueError("model must not be empty")
        self.selected_model = model
        await self._persist()

    async def set_credential(self, credential: Optional[str]) -> None:
        self.credential = credential or ""
        await self._persist()

    async def set_temperature(self, temperature: float) -> None:
        if not 0.0 <= temperature <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        self.temperature = temperature
        await self._persist()

    async def set_system_prompt(self, prompt: str) -> None:
        self.system_prompt = prompt or ""
        await self._persist()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def _storage_path(self) -> str:
        return f"{self.storage_key}.json"

    def snapshot(self) -> PersistedState:
        return PersistedState(
            selected_model=self.selected_model,
            credential=self.credential,
            temperature=self.temperature,
            system_prompt=self.system_prompt,
            chat_sessions=list(self._sessions),
            current_session_id=self.current_session_id,
        )

    async def _persist(self) -> None:
        data = self.snapshot().model_dump_json(by_alias=True)
        if not await self.storage.save(self._storage_path, data):
            logger.error(f"Failed to persist state to {self._storage_path}")

    async def hydrate(self) -> None:
        """Load persisted state once at startup, then set ``hydrated``."""
        content = await self.storage.load(self._storage_path)
        if content is not None:
            try:
                state = PersistedState.model_validate_json(content)
            except PydanticValidationError as e:
                logger.warning(f"Ignoring unreadable persisted state: {e.error_count()} errors")
            else:
                if self._apply_persisted(state):
                    await self._persist()

        self.hydrated = True
        logger.info(
            "Session store hydrated",
            extra={"extra_fields": {
                "session_count": len(self._sessions),
                "current_session_id": self.current_session_id,
            }}
        )

    def _apply_persisted(self, state: PersistedState) -> List[str]:
        """Adopt a persisted record; returns the ids evicted over the session limit."""
        self.selected_model = state.selected_model
        self.credential = state.credential
        self.temperature = state.temperature
        self.system_prompt = state.system_prompt

        seen = set()
        sessions = []
        for session in state.chat_sessions:
            if session.id in seen:
                logger.warning(f"Dropping duplicate session id {session.id}")
                continue
            seen.add(session.id)
            sessions.append(session)
        self._sessions = sessions

        current = self.get_session(state.current_session_id) if state.current_session_id else None
        self.current_session_id = current.id if current else None
        # the buffer is rebuilt from the record; it is never stored itself
        self._messages = _copy_messages(current.messages) if current else []

        return self.evict_excess()

    async def aclose(self) -> None:
        """Write any pending save, then stop background work."""
        await self._autosave.flush()
        await self._autosave.aclose()
        if self.title_synthesizer is not None:
            await self.title_synthesizer.aclose()
