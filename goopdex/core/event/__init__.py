"""
Goopdex event system.

Domain events are published after their transaction commits. Subscribe with
an exact name ("creature.caught") or a wildcard ("challenge.*").
"""

from goopdex.core.event.bus import EventBus
from goopdex.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventPayload",
    "EventListener",
    "ListenerPriority",
    "CallbackType",
]
