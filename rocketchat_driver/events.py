# =============================================================================
# Rocket.Chat Python Driver -- Lifecycle Event Emitter
# =============================================================================

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, Callable

from ._logging import logger

Listener = Callable[..., Any]


class EventEmitter:
    """Named event channel for connection lifecycle notifications.

    Handlers may be plain functions or coroutine functions; coroutines are
    scheduled on the running loop.  A failing handler is logged and does
    not stop delivery to the others.

    Example::

        @driver.events.on("connected")
        def ready():
            print("driver connected")
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._background_tasks: set[asyncio.Task[Any]] = set()

    def on(self, event: str, handler: Listener | None = None) -> Any:
        """Register *handler* for *event*.  Usable as a decorator."""
        if handler is None:

            def decorator(fn: Listener) -> Listener:
                self._listeners[event].append(fn)
                return fn

            return decorator
        self._listeners[event].append(handler)
        return handler

    def once(self, event: str, handler: Listener) -> Listener:
        """Register *handler* to run for the next *event* only."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return handler(*args)

        wrapper.__wrapped__ = handler  # type: ignore[attr-defined]
        self._listeners[event].append(wrapper)
        return wrapper

    def off(self, event: str, handler: Listener) -> None:
        """Remove *handler* (or a ``once`` wrapper around it)."""
        listeners = self._listeners.get(event, [])
        for fn in list(listeners):
            if fn is handler or getattr(fn, "__wrapped__", None) is handler:
                listeners.remove(fn)
                return

    def emit(self, event: str, *args: Any) -> bool:
        """Call every handler for *event*.  Returns True if any existed."""
        listeners = list(self._listeners.get(event, []))
        for handler in listeners:
            try:
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    self._fire_task(result)
            except Exception as exc:
                logger.error("Handler error for '%s': %s", event, exc)
        return bool(listeners)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def clear(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def _fire_task(self, coro: Any) -> None:
        """Schedule a coroutine with a strong reference to prevent GC."""
        task = asyncio.ensure_future(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
