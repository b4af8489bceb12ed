"""
Incremental parsing of ``text/event-stream`` completion bodies.

The splitter works on raw byte chunks as they arrive, so it does not depend
on how a particular HTTP client buffers lines. An event split across two
network chunks is held back until the rest of the line arrives.
"""

import codecs
import json
from typing import Any, Dict, List, Optional

from .errors import ParseError

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"


class SSELineBuffer:
    """Splits arriving byte chunks into complete text lines."""

    def __init__(self, encoding: str = "utf-8"):
        # multi-byte characters may straddle chunk boundaries too
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        """Text received after the last newline."""
        return self._pending

    def feed(self, chunk: bytes) -> List[str]:
        """Add a chunk and return every line it completed."""
        self._pending += self._decoder.decode(chunk)
        *lines, self._pending = self._pending.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> List[str]:
        """Return the unterminated trailing line once the body has ended."""
        self._pending += self._decoder.decode(b"", final=True)
        tail, self._pending = self._pending, ""
        tail = tail.rstrip("\r")
        return [tail] if tail.strip() else []


def is_done(line: str) -> bool:
    return line.strip() == DATA_PREFIX + DONE_MARKER


def parse_event(line: str) -> Optional[Dict[str, Any]]:
    """
    Decode one ``data: <json>`` line.

    Returns None for blank lines, comments and other non-data fields.

    Raises:
        ParseError: the payload is not a JSON object
    """
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None

    payload = stripped[len(DATA_PREFIX):]
    try:
        event = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed stream event: {e}", line=line) from e

    if not isinstance(event, dict):
        raise ParseError("Stream event is not a JSON object", line=line)
    return event


def extract_delta(event: Dict[str, Any]) -> Optional[str]:
    """
    Return the text fragment carried by an event.

    Role-only and finish-reason-only events carry no text and yield None.
    """
    choices = event.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    if not content or not isinstance(content, str):
        return None
    return content
