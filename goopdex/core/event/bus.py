"""
Goopdex EventBus: async pub/sub with tiered listener execution.

Purpose
-------
Decouples the progression engine from whoever observes it. Engine operations
publish domain events ("creature.caught", "challenge.completed", ...) only
after their transaction has committed; listeners never participate in the
transaction.

Responsibilities
----------------
- Register/unregister listeners by exact name or "prefix.*" wildcard
- Order listeners by priority and run them per tier:
  * CRITICAL / HIGH: sequential, awaited with timeout
  * NORMAL: concurrent (gather), awaited
  * LOW: fire-and-forget background tasks
- Error isolation: a failing listener is logged and never blocks the others
- Bind event name and payload keys into the LogContext

Design Decisions
----------------
- **Instance-based**: each engine receives its own bus, tests use a fresh one
- **Config-driven timeouts**: `core.event.listener_timeout.*` via ConfigManager
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Optional

from goopdex.core.config.manager import ConfigManager
from goopdex.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
    pattern_matches,
)
from goopdex.core.logging.logger import bind_log_context, get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Async EventBus with wildcard routing and priority tiers.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("creature.*", on_creature_event)
    >>> await bus.publish("creature.caught", {"owned_id": 7, "species_id": 1})
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        *,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._listeners: dict[str, list[EventListener]] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()

        self._critical_timeout = self._load_timeout(
            key="core.event.listener_timeout.critical_seconds",
            override=critical_timeout_seconds,
            default=5.0,
        )
        self._high_timeout = self._load_timeout(
            key="core.event.listener_timeout.high_seconds",
            override=high_timeout_seconds,
            default=5.0,
        )

        logger.debug(
            "EventBus initialized",
            extra={
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    def _load_timeout(self, key: str, override: Optional[float], default: float) -> float:
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return float(default)
        return self._config_manager.get_float(key, default)

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            # Built-ins may not expose a signature.
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a callback to an event name or "prefix.*" pattern.

        Returns the listener identifier for `unsubscribe()`. Registering the
        same identifier twice for one event is ignored.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.create(
            pattern=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        bucket = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        bucket.sort(key=lambda lst: lst.priority.value)

        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": listener.once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name)
        if not bucket:
            return False

        remaining = [lst for lst in bucket if lst.identifier != identifier]
        removed = len(remaining) != len(bucket)
        if remaining:
            self._listeners[event_name] = remaining
        else:
            del self._listeners[event_name]

        if removed:
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        total = self.get_listener_count()
        self._listeners.clear()
        logger.info(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Routing
    # ------------------------------------------------------------------ #

    def _extract_listeners(self, event_name: str) -> list[EventListener]:
        """Collect matching listeners in priority order and prune once=True ones."""
        matched: list[EventListener] = []
        for pattern in list(self._listeners.keys()):
            if not pattern_matches(pattern, event_name):
                continue
            bucket = self._listeners[pattern]
            matched.extend(bucket)
            keep = [lst for lst in bucket if not lst.once]
            if len(keep) != len(bucket):
                if keep:
                    self._listeners[pattern] = keep
                else:
                    del self._listeners[pattern]

        matched.sort(key=lambda lst: lst.priority.value)
        return matched

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to every matching listener.

        Returns results from CRITICAL/HIGH/NORMAL listeners. LOW listeners are
        fire-and-forget and contribute nothing.
        """
        bind_log_context(event_name=event_name)

        listeners = self._extract_listeners(event_name)
        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        results: list[Any] = []

        for listener in listeners:
            if listener.priority is ListenerPriority.CRITICAL:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._critical_timeout)
                )
            elif listener.priority is ListenerPriority.HIGH:
                results.append(
                    await self._run_with_timeout(listener, event_name, data, self._high_timeout)
                )

        normal = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]
        if normal:
            results.extend(
                await asyncio.gather(
                    *[self._run_listener(lst, event_name, data) for lst in normal]
                )
            )

        loop = asyncio.get_running_loop()
        for listener in listeners:
            if listener.priority is not ListenerPriority.LOW:
                continue
            task = loop.create_task(
                self._run_listener(listener, event_name, data),
                name=f"eventbus-low-{event_name}-{listener.identifier}",
            )
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_with_timeout(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        timeout: Optional[float],
    ) -> Any:
        if timeout is None or timeout <= 0:
            return await self._run_listener(listener, event_name, payload)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "timeout_seconds": timeout,
                },
            )
            return None

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
    ) -> Any:
        try:
            if asyncio.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)
        except Exception as exc:
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return sum(
                len(bucket)
                for pattern, bucket in self._listeners.items()
                if pattern_matches(pattern, event_name)
            )
        return sum(len(bucket) for bucket in self._listeners.values())

    def get_all_events(self) -> list[str]:
        return sorted(self._listeners.keys())

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)
