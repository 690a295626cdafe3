"""
Event types for the Goopdex EventBus.

Event names are dotted (`creature.caught`, `challenge.bonus_granted`).
Subscriptions use either an exact name, a `prefix.*` pattern covering one
family of events, or `*` for everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

EventPayload = dict[str, Any]

CallbackType = Callable[[EventPayload], Union[Any, Awaitable[Any]]]

WILDCARD = "*"


class ListenerPriority(Enum):
    """
    CRITICAL and HIGH run one at a time under a timeout, NORMAL run together
    and are awaited, LOW are scheduled and not awaited. Lower values run first.
    """

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


def pattern_matches(pattern: str, event_name: str) -> bool:
    if pattern == WILDCARD:
        return True
    if pattern.endswith("." + WILDCARD):
        return event_name.startswith(pattern[:-1])
    return pattern == event_name


def default_identifier(callback: CallbackType, pattern: str) -> str:
    owner = getattr(callback, "__module__", None) or "anonymous"
    name = getattr(callback, "__qualname__", None) or type(callback).__name__
    return f"{owner}.{name}@{pattern}"


@dataclass(slots=True, frozen=True)
class EventListener:
    pattern: str
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def create(
        cls,
        pattern: str,
        callback: CallbackType,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> EventListener:
        return cls(
            pattern=pattern,
            callback=callback,
            priority=priority,
            identifier=identifier or default_identifier(callback, pattern),
            once=once,
        )

    def matches(self, event_name: str) -> bool:
        return pattern_matches(self.pattern, event_name)
