"""
Database Model Enums
====================

Type-safe constants for categorical columns. Stored as their string values
(VARCHAR, not native database enums) so the schema is portable between
PostgreSQL and SQLite.
"""

from __future__ import annotations

import enum


class CreatureType(str, enum.Enum):
    """
    Elemental type of a species.

    The five base types can be caught; the hybrid types only come out of
    fusion.
    """

    WATER = "water"
    FIRE = "fire"
    NATURE = "nature"
    ELECTRIC = "electric"
    SHADOW = "shadow"

    STEAM = "steam"
    LIGHTNING_PLANT = "lightning_plant"
    MAGMA = "magma"
    ICE = "ice"
    VOID = "void"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def is_base(self) -> bool:
        return self in _BASE_TYPES

    @classmethod
    def base_types(cls) -> tuple["CreatureType", ...]:
        return _BASE_TYPES


_BASE_TYPES = (
    CreatureType.WATER,
    CreatureType.FIRE,
    CreatureType.NATURE,
    CreatureType.ELECTRIC,
    CreatureType.SHADOW,
)


class ChallengeType(str, enum.Enum):
    """Kinds of daily challenge; each is advanced by one engine operation."""

    CATCH_ANY = "catch_any"
    CATCH_TYPE = "catch_type"
    EVOLVE = "evolve"
    FUSE = "fuse"


class AchievementCategory(str, enum.Enum):
    COLLECTION = "collection"
    EVOLUTION = "evolution"
    EXPLORATION = "exploration"
    DAILY = "daily"
    SPECIAL = "special"


class AchievementMetric(str, enum.Enum):
    """
    Lifetime counter an achievement tracks.

    Every metric except BASE_TYPES_OWNED is monotonic. Owned base types can
    shrink through evolve and fuse, so that one is synced as a high-water mark.
    """

    TOTAL_CAUGHT = "total_caught"
    BASE_TYPES_OWNED = "base_types_owned"
    TOTAL_EVOLVED = "total_evolved"
    TOTAL_FUSED = "total_fused"
    LONGEST_STREAK = "longest_streak"
    CHALLENGES_COMPLETED = "challenges_completed"
