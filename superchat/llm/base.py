"""
Completion Provider Base - message and request types plus the abstract client contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Union

ROLES = ("system", "user", "assistant")

# Sent when the user has not configured a credential; the service picks the tier.
UNUSED_CREDENTIAL = "unused"


@dataclass
class Message:
    """
    One chat message.

    Treated as immutable once appended to a conversation. The single
    exception is the trailing assistant message of an in-flight turn, which
    SessionStore.append_to_last_assistant grows in place.
    """
    role: str  # "system", "user", "assistant"
    content: str = ""

    def __post_init__(self):
        if self.role not in ROLES:
            raise ValueError(f"Unsupported message role: {self.role}")

    @staticmethod
    def user(content: str) -> "Message":
        return Message(role="user", content=content)

    @staticmethod
    def assistant(content: str = "") -> "Message":
        return Message(role="assistant", content=content)

    @staticmethod
    def system(content: str) -> "Message":
        return Message(role="system", content=content)

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """Request shape for both single-shot and streamed completions."""
    model: str
    messages: List[Message]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None

    def to_payload(self, stream: bool) -> Dict[str, Any]:
        """Build the JSON body, omitting unset sampling parameters."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_payload() for m in self.messages],
            "stream": stream,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        if self.top_p is not None:
            payload["top_p"] = self.top_p
        return payload


@dataclass
class CompletionResponse:
    """Response from a single-shot completion call."""
    content: str
    model: str = ""
    usage: Dict[str, int] = field(default_factory=dict)
    finish_reason: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None


DeltaCallback = Callable[[str], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]
DoneCallback = Callable[[], Union[None, Awaitable[None]]]


class CompletionProvider(ABC):
    """
    Abstract base class for chat completion services.
    Implementations carry a mutable bearer credential.
    """

    def __init__(self, base_url: str, credential: Optional[str] = None, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._credential = credential or UNUSED_CREDENTIAL

    @property
    def credential(self) -> str:
        return self._credential

    def set_credential(self, credential: Optional[str]) -> None:
        """Replace the bearer credential; empty values fall back to the sentinel."""
        self._credential = credential or UNUSED_CREDENTIAL

    @abstractmethod
    async def complete(self, request: CompletionRequest,
                       credential: Optional[str] = None) -> CompletionResponse:
        """
        Send a non-streaming completion request.

        Args:
            request: model, messages and optional sampling parameters
            credential: per-call credential override

        Raises:
            TransportError: the service could not be reached
            ApiError: the service returned a non-success status
        """
        pass

    @abstractmethod
    def iter_deltas(self, request: CompletionRequest) -> AsyncGenerator[str, None]:
        """
        Stream a completion, yielding non-empty text deltas in arrival order.

        Raises:
            TransportError, ApiError
        """
        pass

    @abstractmethod
    async def stream_complete(
        self,
        request: CompletionRequest,
        on_delta: DeltaCallback,
        on_error: ErrorCallback,
        on_done: DoneCallback,
    ) -> None:
        """
        Callback form of iter_deltas.

        ``on_error`` is called at most once and is never followed by
        ``on_done``. Callbacks may be plain functions or coroutines.
        """
        pass

    @abstractmethod
    async def list_models(self) -> List[str]:
        """Return the model identifiers offered by the service."""
        pass
