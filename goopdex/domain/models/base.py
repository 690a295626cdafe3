"""
Domain event record collected during a transaction.

Services append `DomainEvent`s while they mutate state; the engine publishes
them on the EventBus only after the transaction has committed, so listeners
never observe work that was rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class DomainEvent:
    event_name: str
    payload: Dict[str, Any]
    # Game-clock time of the operation that produced the event.
    occurred_at: datetime

    def envelope(self) -> Dict[str, Any]:
        """Payload as published: name first, operation timestamp last."""
        return {
            "event_name": self.event_name,
            **self.payload,
            "occurred_at": self.occurred_at.isoformat(),
        }
