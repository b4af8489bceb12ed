"""Utility helpers."""

from .callbacks import maybe_await
from .dates import format_session_date

__all__ = ['maybe_await', 'format_session_date']
