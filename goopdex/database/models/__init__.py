"""
Database Models Package
=======================

SQLAlchemy ORM models for the Goopdex progression engine.

All models:
- Are schema-only, no business logic
- Use Mapped[] syntax with mapped_column()
- Store timestamps with UTCDateTime (aware UTC in Python)

Domain Organization:
--------------------
- catalog: Species, FusionRecipe, Achievement
- collection: OwnedCreature
- player: PlayerProfile (singleton)
- progression: ChallengeBatch, DailyChallenge
- enums: Shared type-safe enumerations
"""

from goopdex.core.database.base import Base

from .catalog import Achievement, FusionRecipe, Species
from .collection import OwnedCreature
from .enums import AchievementCategory, AchievementMetric, ChallengeType, CreatureType
from .player import PROFILE_ID, PlayerProfile
from .progression import ChallengeBatch, DailyChallenge

__all__ = [
    "Base",
    "Species",
    "FusionRecipe",
    "Achievement",
    "OwnedCreature",
    "PlayerProfile",
    "PROFILE_ID",
    "ChallengeBatch",
    "DailyChallenge",
    "CreatureType",
    "ChallengeType",
    "AchievementCategory",
    "AchievementMetric",
]
