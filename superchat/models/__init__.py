"""Models module."""

from .session import (
    DEFAULT_TITLE,
    ActiveConversation,
    ChatSession,
    PersistedState,
    SessionList,
    SessionSummary,
)
from .chat import ChatRequest, ModelList, Preferences, PreferencesUpdate

__all__ = [
    'DEFAULT_TITLE', 'ActiveConversation', 'ChatSession', 'PersistedState',
    'SessionList', 'SessionSummary',
    'ChatRequest', 'ModelList', 'Preferences', 'PreferencesUpdate',
]
