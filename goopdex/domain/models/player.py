"""Read-only view of the player profile with the derived level."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from goopdex.modules.shared.formulas import calculate_level

if TYPE_CHECKING:
    from goopdex.database.models.player import PlayerProfile


@dataclass(frozen=True, slots=True)
class PlayerProfileSnapshot:
    name: str
    total_caught: int
    total_evolved: int
    total_fused: int
    total_challenges_completed: int
    daily_streak: int
    longest_streak: int
    last_login_at: datetime
    total_experience: int
    level: int

    @classmethod
    def from_db(cls, row: PlayerProfile, experience_per_level: int = 1000) -> PlayerProfileSnapshot:
        return cls(
            name=row.name,
            total_caught=row.total_caught,
            total_evolved=row.total_evolved,
            total_fused=row.total_fused,
            total_challenges_completed=row.total_challenges_completed,
            daily_streak=row.daily_streak,
            longest_streak=row.longest_streak,
            last_login_at=row.last_login_at,
            total_experience=row.total_experience,
            level=calculate_level(row.total_experience, experience_per_level),
        )
