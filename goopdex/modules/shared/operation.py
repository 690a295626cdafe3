"""
Per-operation state shared by the services taking part in one engine call.

An `OperationContext` bundles the transaction's session, the single "now"
read from the clock at the start of the operation, and the domain events
collected so far. Services mutate through `op.session` and record events
with `op.emit()`; the engine publishes `op.events` after commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, List

from goopdex.domain.models.base import DomainEvent

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class OperationContext:
    session: AsyncSession
    now: datetime
    events: List[DomainEvent] = field(default_factory=list)

    def emit(self, event_name: str, **payload: Any) -> None:
        self.events.append(DomainEvent(event_name=event_name, payload=payload, occurred_at=self.now))
