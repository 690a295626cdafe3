"""
Progression Engine
==================

Purpose
-------
Orchestrates every state change of the game: catching, evolving, fusing,
releasing duplicates, the daily login streak and the daily challenge
lifecycle. Each public mutator is one atomic unit of work.

Execution model
---------------
For every mutating call the engine:

1. Binds a `LogContext` (operation name, correlation id)
2. Holds the writer lock (serializes writers for the player)
3. Opens one `DatabaseService.get_transaction()`
4. Reads "now" once from the clock into an `OperationContext`
5. Runs the leaf services against that context
6. Commits, then publishes the recorded domain events on the `EventBus`

Any exception rolls the transaction back, is logged with `log_error()` and
propagates unchanged. Events from a failed operation are never published.

Not-eligible outcomes (not enough duplicates, no recipe, same instance twice)
are `None` / `False` / `0` results rather than exceptions.

Dependencies
------------
- DatabaseService: transactions and read sessions
- CatalogService, CollectionLedger, PlayerProfileService, AchievementTracker,
  ChallengeScheduler: leaf services
- Clock, random.Random, WriterLock, EventBus: injected collaborators
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, TypeVar

from goopdex.core.clock import Clock, SystemClock
from goopdex.core.config.config import Config
from goopdex.core.config.manager import ConfigManager
from goopdex.core.database.service import DatabaseService
from goopdex.core.event.bus import EventBus
from goopdex.core.logging.logger import LogContext, get_logger
from goopdex.database.models.enums import AchievementMetric, ChallengeType, CreatureType
from goopdex.database.models.player import PROFILE_ID
from goopdex.domain.models.achievement import AchievementSnapshot
from goopdex.domain.models.challenge import ChallengeSnapshot
from goopdex.domain.models.creature import (
    FusionRecipeSnapshot,
    OwnedCreatureSnapshot,
    SpeciesSnapshot,
)
from goopdex.domain.models.player import PlayerProfileSnapshot
from goopdex.modules.achievement.service import AchievementTracker
from goopdex.modules.catalog.service import CatalogService
from goopdex.modules.collection.service import CollectionLedger
from goopdex.modules.daily.service import ChallengeScheduler
from goopdex.modules.player.service import PlayerProfileService
from goopdex.modules.progression.locks import LocalWriterLock, RedisWriterLock
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.formulas import fused_experience
from goopdex.modules.shared.operation import OperationContext
from goopdex.modules.shared.validators import validate_coordinates, validate_positive_id

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.domain.models.base import DomainEvent
    from goopdex.modules.progression.locks import WriterLock

T = TypeVar("T")


class ProgressionEngine(BaseService):
    """
    Public Methods
    --------------
    Writes:
    - bootstrap() -> Seed catalog, create the profile
    - catch() / evolve() / fuse() / release_duplicates()
    - check_and_update_daily_login()
    - generate_daily_challenges() / all_challenges_bonus_check()
    - rename() / toggle_favorite() / add_creature_experience() / rename_player()

    Reads:
    - profile() / collection() / species() / discovered_recipes()
    - active_challenges() / achievements()
    - find_recipe() / catch_rate() / get_evolve_count()
    """

    def __init__(
        self,
        database: DatabaseService,
        config_manager: ConfigManager,
        catalog: CatalogService,
        collection: CollectionLedger,
        profile_service: PlayerProfileService,
        achievements: AchievementTracker,
        scheduler: ChallengeScheduler,
        clock: Clock,
        writer_lock: WriterLock,
        event_bus: Optional[EventBus] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._database = database
        self._catalog = catalog
        self._collection = collection
        self._profile_service = profile_service
        self._achievements = achievements
        self._scheduler = scheduler
        self._clock = clock
        self._writer_lock = writer_lock
        self._event_bus = event_bus

    # ========================================================================
    # Unit of work
    # ========================================================================

    async def _run(
        self,
        operation: str,
        fn: Callable[[OperationContext], Awaitable[T]],
        **context: Any,
    ) -> T:
        async with LogContext(player_id=PROFILE_ID, component="progression", operation=operation):
            async with self._writer_lock.hold():
                try:
                    async with self._database.get_transaction() as session:
                        op = OperationContext(session=session, now=self._clock.now())
                        result = await fn(op)
                except Exception as exc:
                    self.log_error(operation, exc, **context)
                    raise

            await self._publish(op.events)
            return result

    async def _read(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self._database.get_session() as session:
            return await fn(session)

    async def _publish(self, events: List[DomainEvent]) -> None:
        if self._event_bus is None:
            return
        for event in events:
            await self._event_bus.publish(event.event_name, event.envelope())

    def _xp(self, action: str, default: int) -> int:
        return self.get_config_int(f"progression.xp.{action}", default)

    # ========================================================================
    # Bootstrap
    # ========================================================================

    async def bootstrap(self) -> PlayerProfileSnapshot:
        """Initialize the store, seed the catalog and ensure the profile exists."""
        await self._database.initialize()
        await self._database.create_schema()

        async def _bootstrap(op: OperationContext) -> PlayerProfileSnapshot:
            seeded = await self._catalog.seed(op.session)
            profile = await self._profile_service.ensure_profile(op)
            self.log_operation("bootstrap", catalog_seeded=seeded)
            return PlayerProfileSnapshot.from_db(profile, self._profile_service.experience_per_level)

        return await self._run("bootstrap", _bootstrap)

    # ========================================================================
    # Catch
    # ========================================================================

    async def catch(
        self,
        species_id: int,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> int:
        """
        Add one instance of `species_id` to the collection and return its id.

        Raises:
            NotFoundError: Unknown species
            ValidationError: Bad id or coordinates
        """
        validate_positive_id(species_id, "species_id")
        validate_coordinates(latitude, longitude)

        async def _catch(op: OperationContext) -> int:
            species = await self._catalog.get_species(op.session, species_id)
            creature_type = CreatureType(species.creature_type)

            creature = await self._collection.add_creature(
                op, species, latitude=latitude, longitude=longitude
            )
            op.emit(
                "creature.caught",
                owned_id=creature.id,
                species_id=species.id,
                creature_type=creature_type.value,
            )

            total_caught = await self._profile_service.record_catch(op)
            await self._profile_service.grant_experience(op, self._xp("catch", 25), source="catch")
            self._catalog.mark_species_discovered(op, species)

            await self._achievements.sync_metric(op, AchievementMetric.TOTAL_CAUGHT, total_caught)
            await self._achievements.sync_metric(
                op,
                AchievementMetric.BASE_TYPES_OWNED,
                await self._collection.count_owned_base_types(op.session),
                high_water=True,
            )

            await self._scheduler.record_progress(op, ChallengeType.CATCH_ANY)
            await self._scheduler.record_progress(op, ChallengeType.CATCH_TYPE, creature_type)

            self.log_operation("catch", owned_id=creature.id, species_id=species.id)
            return creature.id

        return await self._run("catch", _catch, species_id=species_id)

    # ========================================================================
    # Evolve
    # ========================================================================

    async def evolve(self, owned_id: int) -> Optional[OwnedCreatureSnapshot]:
        """
        Merge three instances of one species into one of its evolution.

        The new instance keeps the trigger's nickname, favorite flag and
        location, starts at 0 experience and is caught "now".

        Returns None if the species has no evolution or fewer than three
        instances are owned.

        Raises:
            NotFoundError: Unknown owned id
        """
        validate_positive_id(owned_id, "owned_id")

        async def _evolve(op: OperationContext) -> Optional[OwnedCreatureSnapshot]:
            trigger = await self._collection.get_for_update(op, owned_id)
            species = await self._catalog.get_species(op.session, trigger.species_id)
            if species.evolves_to_id is None:
                self.log.debug("Species has no evolution", extra={"species_id": species.id})
                return None

            group = await self._collection.take_evolution_group(op, trigger)
            if group is None:
                return None

            evolved_species = await self._catalog.get_species(op.session, species.evolves_to_id)
            nickname = trigger.nickname
            is_favorite = trigger.is_favorite
            latitude, longitude = trigger.latitude, trigger.longitude
            consumed_ids = [creature.id for creature in group]

            await self._collection.remove(op, group)
            evolved = await self._collection.add_creature(
                op,
                evolved_species,
                nickname=nickname,
                is_favorite=is_favorite,
                latitude=latitude,
                longitude=longitude,
            )
            op.emit(
                "creature.evolved",
                owned_id=evolved.id,
                consumed_ids=consumed_ids,
                from_species_id=species.id,
                to_species_id=evolved_species.id,
            )

            self._catalog.mark_species_discovered(op, evolved_species)
            total_evolved = await self._profile_service.record_evolution(op)
            await self._profile_service.grant_experience(op, self._xp("evolve", 50), source="evolve")
            await self._achievements.sync_metric(op, AchievementMetric.TOTAL_EVOLVED, total_evolved)
            await self._scheduler.record_progress(op, ChallengeType.EVOLVE)

            self.log_operation(
                "evolve",
                owned_id=evolved.id,
                consumed_ids=consumed_ids,
                to_species_id=evolved_species.id,
            )
            return self._collection.snapshot(evolved, evolved_species)

        return await self._run("evolve", _evolve, owned_id=owned_id)

    # ========================================================================
    # Fuse
    # ========================================================================

    async def fuse(self, first_id: int, second_id: int) -> Optional[OwnedCreatureSnapshot]:
        """
        Fuse two owned instances whose types form a known recipe.

        The pair is unordered. The result's experience is the floor average
        of both inputs. Returns None when both ids are the same instance or
        when no recipe matches the two types.

        Raises:
            NotFoundError: Either id unknown
        """
        validate_positive_id(first_id, "first_id")
        validate_positive_id(second_id, "second_id")
        if first_id == second_id:
            return None

        async def _fuse(op: OperationContext) -> Optional[OwnedCreatureSnapshot]:
            first = await self._collection.get_for_update(op, first_id)
            second = await self._collection.get_for_update(op, second_id)
            first_species = await self._catalog.get_species(op.session, first.species_id)
            second_species = await self._catalog.get_species(op.session, second.species_id)

            table = await self._catalog.fusion_table(op.session)
            rule = table.lookup(
                CreatureType(first_species.creature_type),
                CreatureType(second_species.creature_type),
            )
            if rule is None:
                self.log.debug(
                    "No fusion recipe for pair",
                    extra={
                        "type_a": CreatureType(first_species.creature_type).value,
                        "type_b": CreatureType(second_species.creature_type).value,
                    },
                )
                return None

            result_species = await self._catalog.get_species(op.session, rule.result_species_id)
            experience = fused_experience(first.experience, second.experience)

            await self._collection.remove(op, [first, second])
            fused = await self._collection.add_creature(op, result_species, experience=experience)
            op.emit(
                "creature.fused",
                owned_id=fused.id,
                consumed_ids=[first_id, second_id],
                recipe_id=rule.recipe_id,
                result_species_id=result_species.id,
            )

            await self._catalog.mark_recipe_discovered(op, rule.recipe_id)
            self._catalog.mark_species_discovered(op, result_species)
            total_fused = await self._profile_service.record_fusion(op)
            await self._profile_service.grant_experience(op, self._xp("fuse", 75), source="fuse")
            await self._achievements.sync_metric(op, AchievementMetric.TOTAL_FUSED, total_fused)
            await self._scheduler.record_progress(op, ChallengeType.FUSE)

            self.log_operation(
                "fuse",
                owned_id=fused.id,
                recipe_id=rule.recipe_id,
                experience=experience,
            )
            return self._collection.snapshot(fused, result_species)

        return await self._run("fuse", _fuse, first_id=first_id, second_id=second_id)

    # ========================================================================
    # Release
    # ========================================================================

    async def release_duplicates(self) -> int:
        """Keep the newest three of each species; return how many were released."""

        async def _release(op: OperationContext) -> int:
            released = await self._collection.release_duplicates(op)
            total = sum(released.values())
            if total:
                op.emit("creature.released", count=total, by_species=released)
            return total

        return await self._run("release_duplicates", _release)

    # ========================================================================
    # Daily login / challenges
    # ========================================================================

    async def check_and_update_daily_login(self) -> int:
        """Apply today's login to the streak; return the XP bonus paid (0 on same day)."""

        async def _login(op: OperationContext) -> int:
            bonus = await self._profile_service.apply_daily_login(op, self._clock.tz)
            profile = await self._profile_service.load(op)
            await self._achievements.sync_metric(
                op, AchievementMetric.LONGEST_STREAK, profile.longest_streak
            )
            return bonus

        return await self._run("daily_login", _login)

    async def generate_daily_challenges(self) -> List[ChallengeSnapshot]:
        """
        Ensure today's batch exists and return the active challenges.

        Idempotent within a day: an active batch is never regenerated.
        """

        async def _generate(op: OperationContext) -> List[ChallengeSnapshot]:
            await self._scheduler.generate_daily_batch(op)
            return await self._scheduler.active_challenges(op.session, op.now)

        return await self._run("generate_daily_challenges", _generate)

    async def all_challenges_bonus_check(self) -> bool:
        return await self._run("all_challenges_bonus_check", self._scheduler.all_challenges_bonus_check)

    # ========================================================================
    # Per-instance edits
    # ========================================================================

    async def rename(self, owned_id: int, nickname: Optional[str]) -> OwnedCreatureSnapshot:
        async def _rename(op: OperationContext) -> OwnedCreatureSnapshot:
            creature = await self._collection.rename(op, owned_id, nickname)
            species = await self._catalog.get_species(op.session, creature.species_id)
            return self._collection.snapshot(creature, species)

        return await self._run("rename", _rename, owned_id=owned_id)

    async def toggle_favorite(self, owned_id: int) -> OwnedCreatureSnapshot:
        async def _toggle(op: OperationContext) -> OwnedCreatureSnapshot:
            creature = await self._collection.toggle_favorite(op, owned_id)
            species = await self._catalog.get_species(op.session, creature.species_id)
            return self._collection.snapshot(creature, species)

        return await self._run("toggle_favorite", _toggle, owned_id=owned_id)

    async def add_creature_experience(self, owned_id: int, amount: int) -> OwnedCreatureSnapshot:
        async def _add(op: OperationContext) -> OwnedCreatureSnapshot:
            creature = await self._collection.add_creature_experience(op, owned_id, amount)
            species = await self._catalog.get_species(op.session, creature.species_id)
            return self._collection.snapshot(creature, species)

        return await self._run("add_creature_experience", _add, owned_id=owned_id, amount=amount)

    async def rename_player(self, name: str) -> PlayerProfileSnapshot:
        async def _rename_player(op: OperationContext) -> PlayerProfileSnapshot:
            await self._profile_service.rename_player(op, name)
            profile = await self._profile_service.load(op)
            return PlayerProfileSnapshot.from_db(profile, self._profile_service.experience_per_level)

        return await self._run("rename_player", _rename_player)

    # ========================================================================
    # Reads
    # ========================================================================

    async def profile(self) -> PlayerProfileSnapshot:
        return await self._read(self._profile_service.get_profile)

    async def collection(self) -> List[OwnedCreatureSnapshot]:
        return await self._read(self._collection.list_collection)

    async def species(self, discovered_only: bool = False) -> List[SpeciesSnapshot]:
        return await self._read(
            lambda session: self._catalog.list_species(session, discovered_only=discovered_only)
        )

    async def discovered_recipes(self) -> List[FusionRecipeSnapshot]:
        return await self._read(self._catalog.discovered_recipes)

    async def find_recipe(
        self, type_a: CreatureType, type_b: CreatureType
    ) -> Optional[FusionRecipeSnapshot]:
        return await self._read(lambda session: self._catalog.find_recipe(session, type_a, type_b))

    async def active_challenges(self) -> List[ChallengeSnapshot]:
        now = self._clock.now()
        return await self._read(lambda session: self._scheduler.active_challenges(session, now))

    async def achievements(self) -> List[AchievementSnapshot]:
        return await self._read(self._achievements.list_achievements)

    async def get_evolve_count(self, species_id: int) -> int:
        validate_positive_id(species_id, "species_id")
        return await self._read(
            lambda session: self._collection.get_evolve_count(session, species_id)
        )

    def catch_rate(self, rarity: int) -> float:
        return self._catalog.catch_rate(rarity)

    async def shutdown(self) -> None:
        await self._database.shutdown()


def build_engine(
    database: Optional[DatabaseService] = None,
    config_manager: Optional[ConfigManager] = None,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
    writer_lock: Optional[WriterLock] = None,
    event_bus: Optional[EventBus] = None,
) -> ProgressionEngine:
    """
    Wire a ProgressionEngine with default collaborators.

    Defaults: `DATABASE_URL` store, YAML game config, system clock in
    `GOOPDEX_TIMEZONE`, unseeded RNG, Redis writer lock when `REDIS_URL` is
    set (otherwise an in-process lock), and a fresh EventBus.
    """
    Config.validate()
    config_manager = config_manager or ConfigManager.from_directory()
    database = database or DatabaseService()
    clock = clock or SystemClock()
    rng = rng or random.Random()
    if writer_lock is None:
        writer_lock = RedisWriterLock.from_url() if Config.REDIS_URL else LocalWriterLock()
    if event_bus is None:
        event_bus = EventBus(config_manager)

    catalog = CatalogService(config_manager)
    collection = CollectionLedger(config_manager)
    profile_service = PlayerProfileService(config_manager)
    achievements = AchievementTracker(config_manager, profile_service)
    scheduler = ChallengeScheduler(
        config_manager,
        catalog,
        collection,
        profile_service,
        achievements,
        rng,
        clock.tz,
    )

    return ProgressionEngine(
        database=database,
        config_manager=config_manager,
        catalog=catalog,
        collection=collection,
        profile_service=profile_service,
        achievements=achievements,
        scheduler=scheduler,
        clock=clock,
        writer_lock=writer_lock,
        event_bus=event_bus,
    )
