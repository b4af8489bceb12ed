"""
Helpers for callbacks that may be plain functions or coroutine functions.
"""

import inspect
from typing import Any


async def maybe_await(result: Any) -> Any:
    """Await ``result`` if a callback returned an awaitable."""
    if inspect.isawaitable(result):
        return await result
    return result
