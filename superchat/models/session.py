"""
Session Models - chat sessions and the persisted client state.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..llm.base import Message

DEFAULT_TITLE = "New Chat"


class CamelModel(BaseModel):
    """Serializes with camelCase keys; accepts both spellings on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatSession(CamelModel):
    """A persisted conversation. Timestamps are epoch milliseconds."""
    id: str
    title: str = DEFAULT_TITLE
    messages: List[Message] = Field(default_factory=list)
    created_at: int
    updated_at: int
    model: str


class PersistedState(CamelModel):
    """The single record written to durable storage."""
    selected_model: str
    credential: str = ""
    temperature: float = 0.7
    system_prompt: str = ""
    chat_sessions: List[ChatSession] = Field(default_factory=list)
    current_session_id: Optional[str] = None


class SessionSummary(CamelModel):
    """One entry of the chat history list."""
    id: str
    title: str
    model: str
    created_at: int
    updated_at: int
    message_count: int
    display_date: str
    is_current: bool = False


class SessionList(CamelModel):
    """Chat history, most recently updated first."""
    sessions: List[SessionSummary]
    current_session_id: Optional[str] = None


class ActiveConversation(CamelModel):
    """The active buffer as shown in the chat area."""
    current_session_id: Optional[str] = None
    title: Optional[str] = None
    selected_model: str
    messages: List[Message]
    is_streaming: bool = False
    streaming_error_message: str = ""
    title_generating: bool = False
    hydrated: bool = False
