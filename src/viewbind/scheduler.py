"""
Deferred Work Scheduling

The engine is synchronous; the only deferrals are "run on the next tick"
(closing the startup pass) and trailing-edge debounce of change
notifications. Both are delegated to an asyncio event loop. Without a
running loop, deferred callbacks run immediately.
"""

import asyncio
from typing import Any, Callable, Dict, Hashable, Optional
import logging

logger = logging.getLogger(__name__)


class Scheduler:
    """Thin wrapper over an asyncio loop's ``call_soon``/``call_later``."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def _resolve_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    @property
    def is_deferred(self) -> bool:
        """Whether callbacks are actually deferred (a loop is available)"""
        return self._resolve_loop() is not None

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Optional[asyncio.Handle]:
        loop = self._resolve_loop()
        if loop is None:
            callback(*args)
            return None
        return loop.call_soon(callback, *args)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Optional[asyncio.TimerHandle]:
        loop = self._resolve_loop()
        if loop is None:
            callback(*args)
            return None
        return loop.call_later(delay, callback, *args)


class Debouncer:
    """
    Trailing-edge debounce keyed by target identity.

    Every call for a key cancels the pending timer of that key and schedules
    a new one, so a burst collapses into the last callback.
    """

    def __init__(self, scheduler: Scheduler, delay: float):
        self.scheduler = scheduler
        self.delay = delay
        self._pending: Dict[Hashable, asyncio.TimerHandle] = {}

    def __call__(self, key: Hashable, callback: Callable[[], Any]) -> None:
        self.cancel(key)
        handle = self.scheduler.call_later(self.delay, self._fire, key, callback)
        if handle is not None:
            self._pending[key] = handle

    def _fire(self, key: Hashable, callback: Callable[[], Any]) -> None:
        self._pending.pop(key, None)
        try:
            callback()
        except Exception as e:
            logger.error(f"Debounced callback for {key!r} failed: {e}")

    def cancel(self, key: Hashable) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)


__all__ = ["Scheduler", "Debouncer"]
