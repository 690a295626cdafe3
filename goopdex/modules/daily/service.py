"""
Challenge Scheduler
===================

Purpose
-------
Daily challenge lifecycle: generate one batch of three challenges per day,
advance them as the player catches, evolves and fuses, pay their rewards,
and pay the all-challenges bonus exactly once per batch.

Domain
------
- Batches expire together at the next local midnight of the clock's zone
- Expired batches (expires_at <= now) are purged before generating
- A batch is never generated while one is active; at most one is ever active
- Batch composition: CatchAny, CatchType (random base type), and one of
  Evolve/Fuse
- Completing a challenge pays its reward XP, bumps the lifetime
  challenges-completed counter and re-checks the all-challenges bonus
- The bonus grants random base-type creatures and sets `bonus_paid`, so
  later checks for the same batch return False
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, List, Optional

from goopdex.core.clock import next_midnight
from goopdex.core.logging.logger import get_logger
from goopdex.database.models.enums import AchievementMetric, ChallengeType, CreatureType
from goopdex.database.models.progression import ChallengeBatch, DailyChallenge
from goopdex.domain.models.challenge import ChallengeSnapshot
from goopdex.modules.shared.base_repository import BaseRepository
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.exceptions import InvariantViolationError, ValidationError

if TYPE_CHECKING:
    from datetime import datetime, tzinfo
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.core.config.manager import ConfigManager
    from goopdex.modules.achievement.service import AchievementTracker
    from goopdex.modules.catalog.service import CatalogService
    from goopdex.modules.collection.service import CollectionLedger
    from goopdex.modules.player.service import PlayerProfileService
    from goopdex.modules.shared.operation import OperationContext


BATCH_SIZE = 3


class ChallengeBatchRepository(BaseRepository[ChallengeBatch]):
    async def expired(self, session: AsyncSession, now: datetime) -> List[ChallengeBatch]:
        return await self.find_many_where(session, ChallengeBatch.expires_at <= now)

    async def active(self, session: AsyncSession, now: datetime, for_update: bool = False) -> List[ChallengeBatch]:
        return await self.find_many_where(
            session,
            ChallengeBatch.expires_at > now,
            for_update=for_update,
            order_by=[ChallengeBatch.id.asc()],
        )


class DailyChallengeRepository(BaseRepository[DailyChallenge]):
    async def active_incomplete(
        self, session: AsyncSession, now: datetime, challenge_type: ChallengeType
    ) -> List[DailyChallenge]:
        return await self.find_many_where(
            session,
            DailyChallenge.expires_at > now,
            DailyChallenge.is_completed.is_(False),
            DailyChallenge.challenge_type == challenge_type,
            for_update=True,
            order_by=[DailyChallenge.id.asc()],
        )


class ChallengeScheduler(BaseService):
    """
    Public Methods
    --------------
    - generate_daily_batch() -> Purge expired, create today's batch if none is active
    - record_progress() -> Advance matching active challenges by one
    - all_challenges_bonus_check() -> Pay the all-complete bonus once per batch
    - active_batch() / active_challenges() -> Reads
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        catalog: CatalogService,
        collection: CollectionLedger,
        profile_service: PlayerProfileService,
        achievements: AchievementTracker,
        rng: random.Random,
        tz: tzinfo,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._catalog = catalog
        self._collection = collection
        self._profile = profile_service
        self._achievements = achievements
        self._rng = rng
        self._tz = tz

        self._batch_repo = ChallengeBatchRepository(
            ChallengeBatch, get_logger(f"{__name__}.ChallengeBatchRepository")
        )
        self._challenge_repo = DailyChallengeRepository(
            DailyChallenge, get_logger(f"{__name__}.DailyChallengeRepository")
        )

    # ========================================================================
    # Reads
    # ========================================================================

    async def active_batch(
        self, session: AsyncSession, now: datetime, for_update: bool = False
    ) -> Optional[ChallengeBatch]:
        """
        The single unexpired batch, or None.

        Raises InvariantViolationError if more than one batch is active or the
        active batch does not hold exactly three challenges.
        """
        batches = await self._batch_repo.active(session, now, for_update=for_update)
        if not batches:
            return None

        if len(batches) > 1:
            raise InvariantViolationError(
                "single_active_batch",
                f"{len(batches)} challenge batches are active",
                batch_ids=[batch.id for batch in batches],
            )

        batch = batches[0]
        if len(batch.challenges) != BATCH_SIZE:
            raise InvariantViolationError(
                "batch_size",
                f"batch {batch.id} holds {len(batch.challenges)} challenges",
                batch_id=batch.id,
            )
        return batch

    async def active_challenges(self, session: AsyncSession, now: datetime) -> List[ChallengeSnapshot]:
        batch = await self.active_batch(session, now)
        if batch is None:
            return []
        return [ChallengeSnapshot.from_db(challenge) for challenge in batch.challenges]

    # ========================================================================
    # Generation
    # ========================================================================

    async def purge_expired(self, op: OperationContext) -> int:
        expired = await self._batch_repo.expired(op.session, op.now)
        for batch in expired:
            await self._batch_repo.delete(op.session, batch)

        if expired:
            await self._batch_repo.flush(op.session)
            self.log.info(
                "Purged expired challenge batches",
                extra={"batch_ids": [batch.id for batch in expired]},
            )
        return len(expired)

    async def generate_daily_batch(self, op: OperationContext) -> Optional[ChallengeBatch]:
        """
        Create today's batch unless one is already active.

        Returns the new batch, or None if an active batch already existed.
        """
        await self.purge_expired(op)

        if await self.active_batch(op.session, op.now, for_update=True) is not None:
            return None
        if await self._challenge_repo.exists(op.session, DailyChallenge.expires_at > op.now):
            raise InvariantViolationError(
                "challenge_batch_membership",
                "active challenges exist without an active batch",
            )

        expires_at = next_midnight(op.now, self._tz)
        batch = ChallengeBatch(created_at=op.now, expires_at=expires_at, bonus_paid=False)
        batch.challenges = self._build_challenges(op.now, expires_at)
        self._batch_repo.add(op.session, batch)
        await self._batch_repo.flush(op.session)

        self.log_operation(
            "generate_daily_batch",
            batch_id=batch.id,
            expires_at=expires_at.isoformat(),
            challenge_types=[c.challenge_type.value for c in batch.challenges],
        )
        op.emit(
            "challenge.batch_generated",
            batch_id=batch.id,
            expires_at=expires_at.isoformat(),
            challenge_ids=[challenge.id for challenge in batch.challenges],
        )
        return batch

    def _build_challenges(self, now: datetime, expires_at: datetime) -> List[DailyChallenge]:
        catch_any_count = self._rng.randint(
            self.get_config_int("challenges.catch_any.min_count", 2),
            self.get_config_int("challenges.catch_any.max_count", 4),
        )
        target_type = self._rng.choice(CreatureType.base_types())
        catch_type_count = self._rng.randint(
            self.get_config_int("challenges.catch_type.min_count", 1),
            self.get_config_int("challenges.catch_type.max_count", 2),
        )
        optional_kind = self._rng.choice((ChallengeType.EVOLVE, ChallengeType.FUSE))

        plural = "s" if catch_type_count > 1 else ""
        challenges = [
            self._challenge(
                ChallengeType.CATCH_ANY,
                count=catch_any_count,
                reward_key="challenges.catch_any.reward_xp",
                reward_default=50,
                title="Goop Catcher",
                description=f"Catch any {catch_any_count} Goop creatures today",
                now=now,
                expires_at=expires_at,
            ),
            self._challenge(
                ChallengeType.CATCH_TYPE,
                count=catch_type_count,
                reward_key="challenges.catch_type.reward_xp",
                reward_default=75,
                title=f"{target_type.display_name} Hunter",
                description=f"Catch {catch_type_count} {target_type.display_name} type Goop{plural}",
                now=now,
                expires_at=expires_at,
                target_type=target_type,
            ),
        ]

        if optional_kind is ChallengeType.EVOLVE:
            count = self.get_config_int("challenges.evolve.count", 1)
            challenges.append(
                self._challenge(
                    ChallengeType.EVOLVE,
                    count=count,
                    reward_key="challenges.evolve.reward_xp",
                    reward_default=100,
                    title="Evolution Time",
                    description=f"Evolve {count} creature{'s' if count > 1 else ''}",
                    now=now,
                    expires_at=expires_at,
                )
            )
        else:
            count = self.get_config_int("challenges.fuse.count", 1)
            challenges.append(
                self._challenge(
                    ChallengeType.FUSE,
                    count=count,
                    reward_key="challenges.fuse.reward_xp",
                    reward_default=120,
                    title="Fusion Lab",
                    description=f"Fuse {count} pair{'s' if count > 1 else ''} of creatures",
                    now=now,
                    expires_at=expires_at,
                )
            )
        return challenges

    def _challenge(
        self,
        challenge_type: ChallengeType,
        *,
        count: int,
        reward_key: str,
        reward_default: int,
        title: str,
        description: str,
        now: datetime,
        expires_at: datetime,
        target_type: Optional[CreatureType] = None,
    ) -> DailyChallenge:
        return DailyChallenge(
            challenge_type=challenge_type,
            target_type=target_type,
            target_count=count,
            current_progress=0,
            is_completed=False,
            reward_experience=self.get_config_int(reward_key, reward_default),
            title=title,
            description=description,
            created_at=now,
            expires_at=expires_at,
        )

    # ========================================================================
    # Progress
    # ========================================================================

    async def record_progress(
        self,
        op: OperationContext,
        kind: ChallengeType,
        creature_type: Optional[CreatureType] = None,
    ) -> List[int]:
        """
        Advance every active, incomplete challenge of `kind` by one.

        CatchType challenges only advance when `creature_type` equals their
        target type. Returns the ids of challenges completed by this call.
        """
        if kind is ChallengeType.CATCH_TYPE and creature_type is None:
            raise ValidationError("creature_type", "catch_type progress requires a creature type")

        completed: List[int] = []
        for challenge in await self._challenge_repo.active_incomplete(op.session, op.now, kind):
            if kind is ChallengeType.CATCH_TYPE and challenge.target_type != creature_type:
                continue

            challenge.current_progress += 1
            if challenge.current_progress < challenge.target_count:
                continue

            challenge.is_completed = True
            challenge.completed_at = op.now
            completed.append(challenge.id)

            await self._profile.grant_experience(
                op, challenge.reward_experience, source=f"challenge:{challenge.id}"
            )
            total = await self._profile.record_challenge_completed(op)
            op.emit(
                "challenge.completed",
                challenge_id=challenge.id,
                batch_id=challenge.batch_id,
                challenge_type=challenge.challenge_type.value,
                reward_experience=challenge.reward_experience,
            )
            await self._achievements.sync_metric(op, AchievementMetric.CHALLENGES_COMPLETED, total)
            await self.all_challenges_bonus_check(op)

        return completed

    async def all_challenges_bonus_check(self, op: OperationContext) -> bool:
        """
        Pay the all-challenges bonus if every active challenge is complete.

        Creatures granted here count toward `total_caught` and discovery but
        do not drive catch achievements or catch challenges.
        """
        batch = await self.active_batch(op.session, op.now, for_update=True)
        if batch is None or batch.bonus_paid:
            return False

        total = len(batch.challenges)
        done = sum(1 for challenge in batch.challenges if challenge.is_completed)
        if total == 0 or done < total:
            return False

        granted: List[int] = []
        for _ in range(self.get_config_int("challenges.bonus.creature_count", 2)):
            creature_type = self._rng.choice(CreatureType.base_types())
            species = await self._catalog.base_species_for_type(op.session, creature_type)
            creature = await self._collection.add_creature(op, species)
            await self._profile.record_catch(op)
            self._catalog.mark_species_discovered(op, species)
            granted.append(creature.id)

        batch.bonus_paid = True
        batch.bonus_paid_at = op.now

        self.log_operation("all_challenges_bonus", batch_id=batch.id, owned_ids=granted)
        op.emit("challenge.bonus_granted", batch_id=batch.id, owned_ids=granted)
        return True
