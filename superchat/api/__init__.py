"""API module."""

from .chat import router as chat_router
from .models import router as models_router
from .preferences import router as preferences_router
from .sessions import router as sessions_router

__all__ = ['chat_router', 'models_router', 'preferences_router', 'sessions_router']
