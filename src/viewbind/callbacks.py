"""
Host Callback Table

Markup names host functions (``data-display-hide-callback="onHidden"``);
the host registers them here before the engine starts and the engine calls
them through the table.
"""

from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

HostCallback = Callable[..., Any]


class CallbackRegistry:
    """Name → host function lookup table."""

    def __init__(self, callbacks: Optional[Dict[str, HostCallback]] = None):
        self._callbacks: Dict[str, HostCallback] = dict(callbacks or {})

    def register(self, name: str, func: Optional[HostCallback] = None):
        """
        Register `func` under `name`.

        Also usable as a decorator::

            @engine.callbacks.register("onHidden")
            def on_hidden(element_id): ...
        """
        if func is None:
            def decorator(f: HostCallback) -> HostCallback:
                self._callbacks[name] = f
                return f
            return decorator
        if not callable(func):
            raise TypeError(f"Callback {name!r} must be callable")
        self._callbacks[name] = func
        return func

    def unregister(self, name: str) -> None:
        self._callbacks.pop(name, None)

    def get(self, name: str) -> Optional[HostCallback]:
        return self._callbacks.get(name)

    def names(self) -> List[str]:
        return list(self._callbacks)

    def __contains__(self, name: str) -> bool:
        return name in self._callbacks

    def invoke(self, name: str, *args: Any) -> bool:
        """
        Call the named function. Unknown names are a markup problem and only
        logged; host exceptions are logged and swallowed so the evaluation
        pass that triggered them keeps going.
        """
        func = self._callbacks.get(name)
        if func is None:
            logger.warning(f"No callback registered under {name!r}")
            return False
        try:
            func(*args)
        except Exception as e:
            logger.error(f"Callback {name!r} raised: {e}")
            return False
        return True


__all__ = ["CallbackRegistry", "HostCallback"]
