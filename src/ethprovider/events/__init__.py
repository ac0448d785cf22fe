"""Listener registry for Provider events."""

from .bus import EventBus, Listener, ListenerHandle

__all__ = [
    "EventBus",
    "Listener",
    "ListenerHandle",
]
