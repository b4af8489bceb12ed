"""Core module - session store, turn orchestration and helpers."""

from .debounce import Debouncer
from .model_catalog import group_models, refresh_models, vendor_group
from .orchestrator import StreamingOrchestrator, TurnResult, TurnState, describe_error
from .session_store import SessionStore
from .titles import TitleSynthesizer, clean_title, fallback_title

__all__ = [
    'Debouncer',
    'group_models',
    'refresh_models',
    'vendor_group',
    'StreamingOrchestrator',
    'TurnResult',
    'TurnState',
    'describe_error',
    'SessionStore',
    'TitleSynthesizer',
    'clean_title',
    'fallback_title',
]
