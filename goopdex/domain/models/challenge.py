"""Read-only view of a daily challenge."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from goopdex.database.models.enums import ChallengeType, CreatureType

if TYPE_CHECKING:
    from goopdex.database.models.progression import DailyChallenge


@dataclass(frozen=True, slots=True)
class ChallengeSnapshot:
    id: int
    batch_id: int
    challenge_type: ChallengeType
    target_type: Optional[CreatureType]
    target_count: int
    current_progress: int
    is_completed: bool
    reward_experience: int
    title: str
    description: str
    created_at: datetime
    expires_at: datetime

    @property
    def remaining(self) -> int:
        return max(self.target_count - self.current_progress, 0)

    @classmethod
    def from_db(cls, row: DailyChallenge) -> ChallengeSnapshot:
        return cls(
            id=row.id,
            batch_id=row.batch_id,
            challenge_type=ChallengeType(row.challenge_type),
            target_type=CreatureType(row.target_type) if row.target_type is not None else None,
            target_count=row.target_count,
            current_progress=row.current_progress,
            is_completed=row.is_completed,
            reward_experience=row.reward_experience,
            title=row.title,
            description=row.description,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )
