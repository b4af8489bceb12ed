"""
Title Synthesizer - short human-readable labels for chat sessions.

Titles come either from the first user message (heuristic, no network) or
from a secondary, low-cost completion call. Synthesis failures never reach
the caller; they fall back to the heuristic title.
"""

import logging
import re
from typing import Callable, List, Optional, Sequence

from ..llm.base import CompletionProvider, CompletionRequest, Message
from ..models.session import DEFAULT_TITLE
from ..utils import maybe_await
from .debounce import Debouncer

logger = logging.getLogger(__name__)

FALLBACK_MAX_CHARS = 50
TITLE_MAX_CHARS = 60
TITLE_CONTEXT_MESSAGES = 4

_SENTENCE_END = re.compile(r"[.!?]")
_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")
_TRAILING_PUNCTUATION = re.compile(r"[.!?]+$")

TITLE_PROMPT = (
    "Based on the following conversation, generate a concise, descriptive title "
    "(maximum 6 words, no quotes or punctuation):\n\n"
    "{conversation}\n\n"
    "Title:"
)


def fallback_title(messages: Sequence[Message]) -> str:
    """
    Derive a title from the first user message.

    Uses the leading sentence; when that sentence runs past 50 characters the
    first 50 characters of the message are used with an ellipsis instead.
    """
    first_user = next((m for m in messages if m.role == "user"), None)
    if first_user is None:
        return DEFAULT_TITLE

    content = first_user.content.strip()
    first_sentence = _SENTENCE_END.split(content, maxsplit=1)[0]
    if len(first_sentence) > FALLBACK_MAX_CHARS:
        title = content[:FALLBACK_MAX_CHARS] + "..."
    else:
        title = first_sentence
    return title or DEFAULT_TITLE


def clean_title(raw: str) -> str:
    """Strip quotes and trailing punctuation from a model-written title."""
    title = _SURROUNDING_QUOTES.sub("", raw.strip())
    title = _TRAILING_PUNCTUATION.sub("", title)
    return title[:TITLE_MAX_CHARS]


def build_title_prompt(messages: Sequence[Message]) -> str:
    context = messages[:TITLE_CONTEXT_MESSAGES]
    conversation = "\n".join(f"{m.role}: {m.content}" for m in context)
    return TITLE_PROMPT.format(conversation=conversation)


class TitleSynthesizer:
    """
    Generates session titles with a cheap completion model.

    Holds one debounce slot: only the latest ``debounced_synthesize`` call
    inside the window issues a request.
    """

    def __init__(
        self,
        client: CompletionProvider,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 20,
        debounce_ms: int = 2000,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._debouncer = Debouncer(debounce_ms, name="title-synthesis")

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    async def synthesize_title(self, messages: Sequence[Message],
                               credential: Optional[str] = None) -> str:
        """
        Ask the completion service for a title of at most six words.

        Returns:
            The cleaned title, or fallback_title(messages) on any failure
        """
        context = list(messages[:TITLE_CONTEXT_MESSAGES])
        if not context:
            return DEFAULT_TITLE

        request = CompletionRequest(
            model=self.model,
            messages=[Message.user(build_title_prompt(context))],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        try:
            response = await self.client.complete(request, credential=credential)
        except Exception as e:
            logger.warning(f"Failed to generate AI title: {e}")
            return fallback_title(messages)

        title = clean_title(response.content or "")
        if not title:
            logger.debug("AI title was empty, using fallback")
            return fallback_title(messages)
        return title

    def debounced_synthesize(
        self,
        messages: List[Message],
        credential: Optional[str],
        callback: Callable[[str], object],
        delay_ms: Optional[int] = None,
    ) -> None:
        """
        Schedule synthesize_title and hand the result to ``callback``.

        Supersedes any synthesis still waiting in this synthesizer's slot.
        """
        snapshot = [Message(role=m.role, content=m.content) for m in messages]

        async def run() -> None:
            title = await self.synthesize_title(snapshot, credential)
            await maybe_await(callback(title))

        self._debouncer.schedule(run, delay_ms=delay_ms)

    async def aclose(self) -> None:
        await self._debouncer.aclose()

