"""Read-only view of an achievement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from goopdex.database.models.enums import AchievementCategory, AchievementMetric

if TYPE_CHECKING:
    from goopdex.database.models.catalog import Achievement


@dataclass(frozen=True, slots=True)
class AchievementSnapshot:
    id: str
    title: str
    description: str
    category: AchievementCategory
    metric: AchievementMetric
    target_progress: int
    current_progress: int
    reward_experience: int
    is_completed: bool
    completed_at: Optional[datetime]

    @property
    def fraction(self) -> float:
        return min(self.current_progress / self.target_progress, 1.0)

    @classmethod
    def from_db(cls, row: Achievement) -> AchievementSnapshot:
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            category=AchievementCategory(row.category),
            metric=AchievementMetric(row.metric),
            target_progress=row.target_progress,
            current_progress=row.current_progress,
            reward_experience=row.reward_experience,
            is_completed=row.is_completed,
            completed_at=row.completed_at,
        )
