"""
Chat Models - request/response bodies for the chat and preference endpoints.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from .session import CamelModel


class ChatRequest(BaseModel):
    """A user message to send to the active conversation."""
    content: str


class Preferences(CamelModel):
    """User preferences; the credential is masked."""
    selected_model: str
    credential: str = ""
    has_credential: bool = False
    temperature: float
    system_prompt: str = ""


class PreferencesUpdate(CamelModel):
    """Partial update of user preferences. Omitted fields are left unchanged."""
    selected_model: Optional[str] = None
    credential: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    system_prompt: Optional[str] = None


class ModelList(CamelModel):
    """Available models, flat and grouped by vendor."""
    models: List[str]
    groups: Dict[str, List[str]]
    selected_model: str
