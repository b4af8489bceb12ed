"""LLM module - completion client, stream parsing and error taxonomy."""

from .base import (
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
    Message,
    UNUSED_CREDENTIAL,
)
from .client import CompletionClient
from .errors import ApiError, ParseError, SuperChatError, TransportError, ValidationError
from .factory import create_completion_client

__all__ = [
    'CompletionProvider',
    'CompletionRequest',
    'CompletionResponse',
    'Message',
    'UNUSED_CREDENTIAL',
    'CompletionClient',
    'ApiError',
    'ParseError',
    'SuperChatError',
    'TransportError',
    'ValidationError',
    'create_completion_client',
]
