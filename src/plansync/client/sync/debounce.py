"""Debounced trigger for sync requests.

Rapid local edits each ask for a sync; a Debouncer coalesces them so that
only the last request within the delay window runs. Each instance owns its
own single timer slot, so independent engines (and tests) never interfere.

Must be used from the event loop thread.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_DELAY = 0.5  # seconds


class Debouncer:
    """Single-slot delayed callback scheduler."""

    def __init__(self, delay: float = DEFAULT_DEBOUNCE_DELAY) -> None:
        """Initialize the debouncer.

        Args:
            delay: Default delay in seconds between the last call and the run.
        """
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Task[Any]] = set()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a callback is scheduled and has not fired yet."""
        return self._handle is not None

    def schedule(self, callback: Callable[[], Any], delay: float | None = None) -> None:
        """Schedule ``callback``, replacing any pending one.

        Coroutine functions are run as tasks on the loop.

        Args:
            callback: Zero-argument callable or coroutine function.
            delay: Override of the default delay.
        """
        self.cancel_pending()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(
            self._delay if delay is None else delay, self._fire, callback
        )

    def cancel_pending(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a callback was cancelled.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    async def drain(self) -> None:
        """Wait for callbacks that already fired to finish."""
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)

    def _fire(self, callback: Callable[[], Any]) -> None:
        self._handle = None
        try:
            result = callback()
        except Exception as e:
            logger.error(f"Debounced callback failed: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._running.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Debounced sync failed: {task.exception()}")
