"""
Event bus for Provider notifications.

A mapping from event name to an ordered list of listener registrations.
`emit` works on a snapshot of the list taken when it starts, and skips
registrations that were removed while the pass was running.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ethprovider.core.logging import get_logger

Listener = Callable[..., Any]

_handle_ids = itertools.count(1)


@dataclass(eq=False)
class ListenerHandle:
    """One registration of a listener for an event name."""

    event: str
    listener: Listener
    once: bool = False
    id: int = field(default_factory=lambda: next(_handle_ids))
    active: bool = True


def _event_name(event: Any) -> str:
    # str enums (ProviderEvent, LegacyEvent) register under their value
    return event.value if hasattr(event, "value") else str(event)


class EventBus:
    """
    Minimal publish/subscribe registry.

    Example:
        >>> bus = EventBus()
        >>> handle = bus.on("chainChanged", lambda chain_id: print(chain_id))
        >>> bus.emit("chainChanged", "0x1")
        >>> bus.remove_listener(handle)
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[ListenerHandle]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()
        self._logger = get_logger("events")

    def on(self, event: str, listener: Listener) -> ListenerHandle:
        """Register a listener; every registration is independent."""
        return self._add(event, listener, once=False)

    def once(self, event: str, listener: Listener) -> ListenerHandle:
        """Register a listener that is removed after its first invocation."""
        return self._add(event, listener, once=True)

    def _add(self, event: str, listener: Listener, once: bool) -> ListenerHandle:
        if not callable(listener):
            raise TypeError(f"Listener for '{_event_name(event)}' must be callable")
        handle = ListenerHandle(event=_event_name(event), listener=listener, once=once)
        self._listeners.setdefault(handle.event, []).append(handle)
        return handle

    def remove_listener(self, handle: ListenerHandle) -> bool:
        """Remove a registration by handle identity."""
        registrations = self._listeners.get(handle.event)
        if not registrations:
            return False
        for index, registered in enumerate(registrations):
            if registered is handle:
                del registrations[index]
                handle.active = False
                if not registrations:
                    del self._listeners[handle.event]
                return True
        return False

    def find(self, event: str, listener: Listener) -> ListenerHandle | None:
        """Most recently added registration of `listener` for `event`."""
        for handle in reversed(self._listeners.get(_event_name(event), [])):
            if handle.listener == listener:
                return handle
        return None

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            names = list(self._listeners)
        else:
            names = [_event_name(event)]
        for name in names:
            for handle in self._listeners.pop(name, []):
                handle.active = False

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(_event_name(event), []))

    def listeners(self, event: str) -> list[Listener]:
        return [h.listener for h in self._listeners.get(_event_name(event), [])]

    def event_names(self) -> list[str]:
        return list(self._listeners)

    def emit(self, event: str, *args: Any) -> bool:
        """
        Invoke every listener registered for `event`, in registration order.

        A failing listener is logged and does not stop the others.

        Returns:
            True if the event had listeners when the pass started
        """
        name = _event_name(event)
        snapshot = list(self._listeners.get(name, []))
        for handle in snapshot:
            if not handle.active:
                continue
            if handle.once:
                self.remove_listener(handle)
            try:
                result = handle.listener(*args)
            except Exception:
                self._logger.exception(f"Listener for '{name}' raised")
                continue
            if inspect.isawaitable(result):
                self._schedule(name, result)
        return bool(snapshot)

    def _schedule(self, name: str, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop to drive the coroutine
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._logger.warning(f"Dropped async listener result for '{name}': no running event loop")
            return
        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._task_done(name, t))

    def _task_done(self, name: str, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(f"Async listener for '{name}' raised: {exc!r}")

    async def drain(self) -> None:
        """Wait for scheduled async listeners to finish."""
        pending = [t for t in self._tasks if not t.done()]
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = [t for t in self._tasks if not t.done()]
