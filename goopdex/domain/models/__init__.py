"""
Domain models package.

Frozen snapshots returned by the progression engine, detached from any ORM
session, plus the `DomainEvent` record collected during a transaction.

Design Notes
------------
- Database models (goopdex/database/models/): anemic SQLAlchemy schemas
- Domain models (goopdex/domain/models/): immutable views built with `from_db()`
"""

from .achievement import AchievementSnapshot
from .base import DomainEvent
from .challenge import ChallengeSnapshot
from .creature import FusionRecipeSnapshot, OwnedCreatureSnapshot, SpeciesSnapshot
from .player import PlayerProfileSnapshot

__all__ = [
    "DomainEvent",
    "SpeciesSnapshot",
    "FusionRecipeSnapshot",
    "OwnedCreatureSnapshot",
    "ChallengeSnapshot",
    "PlayerProfileSnapshot",
    "AchievementSnapshot",
]
