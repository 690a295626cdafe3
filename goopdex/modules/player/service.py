"""
Player Profile Service
======================

Purpose
-------
Owns the singleton `PlayerProfile` row: lifetime counters, experience and
level, and the daily-login streak.

Domain
------
- Create the profile on first bootstrap (name "Trainer", last login = now)
- Grant experience and detect level changes (`player.leveled_up`)
- Increment lifetime counters (caught, evolved, fused, challenges)
- Daily login: day difference in the clock's timezone, streak rules,
  longest streak, `streak * multiplier` bonus when the day advanced
- Rename the player

Every mutator takes the running `OperationContext`; the engine owns the
transaction and publishes the recorded events after commit.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import TYPE_CHECKING, Optional

from goopdex.core.logging.logger import get_logger
from goopdex.database.models.player import PROFILE_ID, PlayerProfile
from goopdex.domain.models.player import PlayerProfileSnapshot
from goopdex.modules.shared.base_repository import BaseRepository
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.exceptions import NotFoundError
from goopdex.modules.shared.formulas import (
    calculate_level,
    login_day_difference,
    next_streak,
    streak_bonus,
)
from goopdex.modules.shared.validators import validate_non_negative, validate_player_name

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.core.config.manager import ConfigManager
    from goopdex.modules.shared.operation import OperationContext


class PlayerProfileRepository(BaseRepository[PlayerProfile]):
    """Repository for the PlayerProfile singleton."""

    pass


class PlayerProfileService(BaseService):
    """
    Service for the player's aggregate progression state.

    Public Methods
    --------------
    - ensure_profile() -> Create the singleton if missing
    - load() -> Locked profile row for the current operation
    - get_profile() -> Read-only snapshot
    - grant_experience() -> Add XP, emit level-up
    - record_catch() / record_evolution() / record_fusion() / record_challenge_completed()
    - apply_daily_login() -> Streak update and login bonus
    - rename_player()
    """

    def __init__(self, config_manager: ConfigManager, logger: Optional[Logger] = None) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._profile_repo = PlayerProfileRepository(
            PlayerProfile, get_logger(f"{__name__}.PlayerProfileRepository")
        )

    @property
    def experience_per_level(self) -> int:
        return self.get_config_int("progression.xp.per_level", 1000)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def ensure_profile(self, op: OperationContext) -> PlayerProfile:
        profile = await self._profile_repo.get(op.session, PROFILE_ID)
        if profile is not None:
            return profile

        profile = PlayerProfile(
            id=PROFILE_ID,
            name=self.get_config("progression.profile.default_name", "Trainer"),
            total_caught=0,
            total_evolved=0,
            total_fused=0,
            total_challenges_completed=0,
            daily_streak=0,
            longest_streak=0,
            last_login_at=op.now,
            total_experience=0,
        )
        self._profile_repo.add(op.session, profile)
        await self._profile_repo.flush(op.session)

        self.log_operation("create_profile", name=profile.name)
        return profile

    async def load(self, op: OperationContext) -> PlayerProfile:
        profile = await self._profile_repo.get_for_update(op.session, PROFILE_ID)
        if profile is None:
            raise NotFoundError("PlayerProfile", PROFILE_ID)
        return profile

    async def get_profile(self, session: AsyncSession) -> PlayerProfileSnapshot:
        profile = await self._profile_repo.get(session, PROFILE_ID)
        if profile is None:
            raise NotFoundError("PlayerProfile", PROFILE_ID)
        return PlayerProfileSnapshot.from_db(profile, self.experience_per_level)

    def calculate_level(self, total_experience: int) -> int:
        return calculate_level(total_experience, self.experience_per_level)

    # ========================================================================
    # Experience
    # ========================================================================

    async def grant_experience(self, op: OperationContext, amount: int, source: str) -> int:
        """
        Add `amount` XP and return the new total.

        Emits `player.leveled_up` when the derived level changes.
        """
        validate_non_negative(amount, "amount")
        profile = await self.load(op)
        if amount == 0:
            return profile.total_experience

        old_level = self.calculate_level(profile.total_experience)
        profile.total_experience += amount
        new_level = self.calculate_level(profile.total_experience)

        self.log.debug(
            "Experience granted",
            extra={
                "amount": amount,
                "source": source,
                "total_experience": profile.total_experience,
            },
        )

        if new_level != old_level:
            op.emit(
                "player.leveled_up",
                old_level=old_level,
                new_level=new_level,
                total_experience=profile.total_experience,
                source=source,
            )
        return profile.total_experience

    # ========================================================================
    # Lifetime counters
    # ========================================================================

    async def record_catch(self, op: OperationContext, count: int = 1) -> int:
        profile = await self.load(op)
        profile.total_caught += count
        return profile.total_caught

    async def record_evolution(self, op: OperationContext) -> int:
        profile = await self.load(op)
        profile.total_evolved += 1
        return profile.total_evolved

    async def record_fusion(self, op: OperationContext) -> int:
        profile = await self.load(op)
        profile.total_fused += 1
        return profile.total_fused

    async def record_challenge_completed(self, op: OperationContext) -> int:
        profile = await self.load(op)
        profile.total_challenges_completed += 1
        return profile.total_challenges_completed

    # ========================================================================
    # Daily login
    # ========================================================================

    async def apply_daily_login(self, op: OperationContext, tz: tzinfo) -> int:
        """
        Update the login streak for a login at `op.now` and return the bonus.

        The streak and login timestamp are written on every call; the bonus
        is only paid when the calendar day (in `tz`) changed.
        """
        profile = await self.load(op)

        day_difference = login_day_difference(profile.last_login_at, op.now, tz)
        previous_streak = profile.daily_streak
        streak = next_streak(previous_streak, day_difference)

        profile.daily_streak = streak
        profile.longest_streak = max(profile.longest_streak, streak)
        profile.last_login_at = op.now

        bonus = 0
        if day_difference != 0:
            multiplier = self.get_config_int("progression.xp.streak_multiplier", 10)
            bonus = streak_bonus(streak, multiplier)
            await self.grant_experience(op, bonus, source="daily_login")

        self.log_operation(
            "daily_login",
            day_difference=day_difference,
            previous_streak=previous_streak,
            streak=streak,
            bonus=bonus,
        )
        op.emit(
            "player.daily_login",
            day_difference=day_difference,
            streak=streak,
            longest_streak=profile.longest_streak,
            bonus_experience=bonus,
        )
        return bonus

    # ========================================================================
    # Identity
    # ========================================================================

    async def rename_player(self, op: OperationContext, name: str) -> str:
        max_length = self.get_config_int("progression.collection.nickname_max_length", 24)
        cleaned = validate_player_name(name, max_length)
        profile = await self.load(op)
        profile.name = cleaned
        self.log_operation("rename_player", name=cleaned)
        return cleaned
