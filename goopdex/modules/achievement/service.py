"""
Achievement Tracker
===================

Purpose
-------
One-shot achievements driven by absolute values of lifetime metrics.

Domain
------
- `update_progress(id, value)` writes the absolute value, never a delta
- Completed achievements are frozen: further updates are no-ops
- Reaching the target completes the achievement, stamps `completed_at` and
  pays its reward experience exactly once
- Progress never decreases; a lower value is a programming error and raises
  `InvariantViolationError`
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from goopdex.core.logging.logger import get_logger
from goopdex.database.models.catalog import Achievement
from goopdex.database.models.enums import AchievementMetric
from goopdex.domain.models.achievement import AchievementSnapshot
from goopdex.modules.shared.base_repository import BaseRepository
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.exceptions import InvariantViolationError, NotFoundError
from goopdex.modules.shared.validators import validate_non_negative

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.core.config.manager import ConfigManager
    from goopdex.modules.player.service import PlayerProfileService
    from goopdex.modules.shared.operation import OperationContext


class AchievementRepository(BaseRepository[Achievement]):
    async def incomplete_for_metric(
        self, session: AsyncSession, metric: AchievementMetric
    ) -> List[Achievement]:
        return await self.find_many_where(
            session,
            Achievement.metric == metric,
            Achievement.is_completed.is_(False),
            for_update=True,
            order_by=[Achievement.target_progress.asc(), Achievement.id.asc()],
        )


class AchievementTracker(BaseService):
    """
    Public Methods
    --------------
    - update_progress() -> Absolute progress update for one achievement
    - sync_metric() -> Push a metric's current value into every achievement tracking it
    - list_achievements() -> Read-only snapshots
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        profile_service: PlayerProfileService,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._profile = profile_service
        self._achievement_repo = AchievementRepository(
            Achievement, get_logger(f"{__name__}.AchievementRepository")
        )

    async def update_progress(self, op: OperationContext, achievement_id: str, value: int) -> bool:
        """
        Set progress to `value`. Returns True if this call completed it.

        Raises:
            NotFoundError: Unknown achievement id
            InvariantViolationError: `value` is below the recorded progress
        """
        validate_non_negative(value, "value")
        achievement = await self._achievement_repo.get_for_update(op.session, achievement_id)
        if achievement is None:
            raise NotFoundError("Achievement", achievement_id)
        return await self._apply(op, achievement, value)

    async def sync_metric(
        self,
        op: OperationContext,
        metric: AchievementMetric,
        value: int,
        high_water: bool = False,
    ) -> List[str]:
        """
        Update every incomplete achievement tracking `metric`; return ids completed now.

        With `high_water`, a value below the recorded progress leaves it unchanged
        instead of raising, for metrics that can go down.
        """
        completed: List[str] = []
        for achievement in await self._achievement_repo.incomplete_for_metric(op.session, metric):
            progress = max(value, achievement.current_progress) if high_water else value
            if await self._apply(op, achievement, progress):
                completed.append(achievement.id)
        return completed

    async def _apply(self, op: OperationContext, achievement: Achievement, value: int) -> bool:
        if achievement.is_completed:
            return False

        if value < achievement.current_progress:
            raise InvariantViolationError(
                "monotonic_achievement_progress",
                f"progress for '{achievement.id}' would drop from "
                f"{achievement.current_progress} to {value}",
                achievement_id=achievement.id,
            )

        achievement.current_progress = value
        if value < achievement.target_progress:
            return False

        achievement.is_completed = True
        achievement.completed_at = op.now
        await self._profile.grant_experience(
            op, achievement.reward_experience, source=f"achievement:{achievement.id}"
        )

        self.log_operation(
            "achievement_completed",
            achievement_id=achievement.id,
            reward_experience=achievement.reward_experience,
        )
        op.emit(
            "achievement.completed",
            achievement_id=achievement.id,
            title=achievement.title,
            reward_experience=achievement.reward_experience,
        )
        return True

    async def list_achievements(self, session: AsyncSession) -> List[AchievementSnapshot]:
        rows = await self._achievement_repo.all(session)
        return [AchievementSnapshot.from_db(row) for row in rows]
