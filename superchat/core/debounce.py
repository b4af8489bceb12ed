"""
Single-slot debouncer built on asyncio tasks.

Each instance owns one slot: scheduling a new call cancels the pending one,
so only the most recent call within the delay window runs. A call whose
delay has already elapsed is left to finish; it is not interrupted.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Set, Tuple

from ..utils import maybe_await

logger = logging.getLogger(__name__)


class Debouncer:
    """Cancellable deferred task with a single pending slot."""

    def __init__(self, delay_ms: int, name: str = "debouncer"):
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.delay_ms = delay_ms
        self.name = name
        self._pending: Optional[asyncio.Task] = None
        self._pending_call: Optional[Tuple[Callable[..., Any], tuple]] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        """True while a call is waiting for its delay to elapse."""
        return self._pending is not None and not self._pending.done()

    @property
    def busy(self) -> bool:
        """True while a call is waiting or running."""
        return self.pending or any(not t.done() for t in self._running)

    def schedule(self, callback: Callable[..., Any], *args: Any,
                 delay_ms: Optional[int] = None) -> None:
        """
        Run ``callback(*args)`` after the delay, superseding any pending call.

        Must be called from within a running event loop. The callback may be
        a coroutine function; its exceptions are logged, never raised.
        ``delay_ms`` overrides the default delay for this call only.
        """
        loop = asyncio.get_running_loop()
        if self.cancel():
            logger.debug(f"{self.name}: pending call superseded")
        delay = self.delay_ms if delay_ms is None else delay_ms
        self._pending_call = (callback, args)
        self._pending = loop.create_task(self._delayed(callback, args, delay))

    def cancel(self) -> bool:
        """Drop the pending call, if any. Returns True when one was dropped."""
        task, self._pending = self._pending, None
        self._pending_call = None
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    async def flush(self) -> None:
        """Run the pending call now instead of waiting out the delay."""
        call = self._pending_call
        if self.cancel() and call is not None:
            callback, args = call
            await self._invoke(callback, args)
        await self.wait()

    async def wait(self) -> None:
        """Wait until no call is pending or running."""
        while self.busy:
            tasks = {t for t in self._running if not t.done()}
            if self.pending:
                tasks.add(self._pending)
            await asyncio.wait(tasks)

    async def aclose(self) -> None:
        """Cancel everything this debouncer started."""
        self.cancel()
        running = [t for t in self._running if not t.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        self._running.clear()

    async def _delayed(self, callback: Callable[..., Any], args: tuple, delay_ms: int) -> None:
        await asyncio.sleep(delay_ms / 1000)
        # From here on the call belongs to _running and can no longer be superseded.
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
            self._pending_call = None
        self._running.add(task)
        try:
            await self._invoke(callback, args)
        finally:
            self._running.discard(task)

    async def _invoke(self, callback: Callable[..., Any], args: tuple) -> None:
        try:
            await maybe_await(callback(*args))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"{self.name}: debounced call failed")
