"""
Error taxonomy shared by the completion client and the chat core.
"""

from typing import Optional


class SuperChatError(Exception):
    """Base class for all SuperChat errors."""


class TransportError(SuperChatError):
    """The completion service could not be reached or the connection dropped."""


class ApiError(SuperChatError):
    """The completion service answered with a non-success status."""

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"API Error: {status} - {message}")


class ParseError(SuperChatError):
    """A single streamed event could not be decoded."""

    def __init__(self, message: str, line: Optional[str] = None):
        self.line = line
        super().__init__(message)


class ValidationError(SuperChatError):
    """An action was rejected by a guard condition (blank input, turn in flight)."""
