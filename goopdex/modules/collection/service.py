"""
Collection Ledger
=================

Purpose
-------
The player's owned creature instances: creation, lookup with row locks,
evolution merge groups, duplicate release and the small per-instance edits
(nickname, favorite, experience).

Domain
------
- Owned instances always reference an existing species
- Evolution consumes exactly `merge_count` instances of one species: the
  triggering instance plus the oldest others by id
- Release keeps the `duplicates_kept` most recently caught per species
  (ties broken by id, newest first)
"""

from __future__ import annotations

from itertools import groupby
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import distinct, func, select

from goopdex.core.logging.logger import get_logger
from goopdex.database.models.catalog import Species
from goopdex.database.models.collection import OwnedCreature
from goopdex.database.models.enums import CreatureType
from goopdex.domain.models.creature import OwnedCreatureSnapshot
from goopdex.modules.shared.base_repository import BaseRepository
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.validators import (
    require_found,
    validate_coordinates,
    validate_nickname,
    validate_non_negative,
    validate_positive_id,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.core.config.manager import ConfigManager
    from goopdex.modules.shared.operation import OperationContext


class OwnedCreatureRepository(BaseRepository[OwnedCreature]):
    async def list_by_species(
        self, session: AsyncSession, species_id: int, for_update: bool = False
    ) -> List[OwnedCreature]:
        return await self.find_many_where(
            session,
            OwnedCreature.species_id == species_id,
            for_update=for_update,
            order_by=[OwnedCreature.id.asc()],
        )

    async def list_for_release(self, session: AsyncSession) -> List[OwnedCreature]:
        return await self.find_many_where(
            session,
            for_update=True,
            order_by=[
                OwnedCreature.species_id.asc(),
                OwnedCreature.caught_at.desc(),
                OwnedCreature.id.desc(),
            ],
        )

    async def count_owned_types(
        self, session: AsyncSession, types: Iterable[CreatureType]
    ) -> int:
        stmt = (
            select(func.count(distinct(Species.creature_type)))
            .select_from(OwnedCreature)
            .join(Species, Species.id == OwnedCreature.species_id)
            .where(Species.creature_type.in_(list(types)))
        )
        return (await session.execute(stmt)).scalar_one()


class CollectionLedger(BaseService):
    """
    Public Methods
    --------------
    - add_creature() -> Insert an owned instance
    - get_for_update() -> Locked instance or NotFoundError
    - take_evolution_group() -> Instances an evolution would consume, or None
    - remove() -> Delete instances
    - release_duplicates() -> Trim each species to the newest N
    - rename() / toggle_favorite() / add_creature_experience()
    - get_evolve_count() / list_collection() / snapshot()
    """

    def __init__(self, config_manager: ConfigManager, logger: Optional[Logger] = None) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._owned_repo = OwnedCreatureRepository(
            OwnedCreature, get_logger(f"{__name__}.OwnedCreatureRepository")
        )

    @property
    def merge_count(self) -> int:
        return self.get_config_int("progression.evolution.merge_count", 3)

    @property
    def duplicates_kept(self) -> int:
        return self.get_config_int("progression.collection.duplicates_kept", 3)

    @property
    def nickname_max_length(self) -> int:
        return self.get_config_int("progression.collection.nickname_max_length", 24)

    # ========================================================================
    # Creation / lookup
    # ========================================================================

    async def add_creature(
        self,
        op: OperationContext,
        species: Species,
        *,
        nickname: Optional[str] = None,
        experience: int = 0,
        is_favorite: bool = False,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> OwnedCreature:
        validate_coordinates(latitude, longitude)
        validate_non_negative(experience, "experience")

        creature = OwnedCreature(
            species_id=species.id,
            nickname=nickname,
            experience=experience,
            caught_at=op.now,
            is_favorite=is_favorite,
            latitude=latitude,
            longitude=longitude,
        )
        self._owned_repo.add(op.session, creature)
        await self._owned_repo.flush(op.session)
        return creature

    async def get(self, session: AsyncSession, owned_id: int) -> OwnedCreature:
        validate_positive_id(owned_id, "owned_id")
        creature = await self._owned_repo.get(session, owned_id)
        return require_found(creature, "OwnedCreature", owned_id)

    async def get_for_update(self, op: OperationContext, owned_id: int) -> OwnedCreature:
        validate_positive_id(owned_id, "owned_id")
        creature = await self._owned_repo.get_for_update(op.session, owned_id)
        return require_found(creature, "OwnedCreature", owned_id)

    async def remove(self, op: OperationContext, creatures: Sequence[OwnedCreature]) -> None:
        for creature in creatures:
            await self._owned_repo.delete(op.session, creature)
        await self._owned_repo.flush(op.session)

    # ========================================================================
    # Evolution / release
    # ========================================================================

    async def take_evolution_group(
        self, op: OperationContext, trigger: OwnedCreature
    ) -> Optional[List[OwnedCreature]]:
        """
        The instances an evolution of `trigger` would consume.

        Returns `merge_count` instances (trigger first, then the lowest ids
        of the same species), or None if fewer are owned.
        """
        owned = await self._owned_repo.list_by_species(
            op.session, trigger.species_id, for_update=True
        )
        needed = self.merge_count
        if len(owned) < needed:
            self.log.debug(
                "Not enough duplicates to evolve",
                extra={"species_id": trigger.species_id, "owned": len(owned), "needed": needed},
            )
            return None

        others = [creature for creature in owned if creature.id != trigger.id]
        return [trigger, *others[: needed - 1]]

    async def release_duplicates(self, op: OperationContext) -> Dict[int, int]:
        """
        Delete all but the newest `duplicates_kept` instances of each species.

        Returns a mapping of species id to number of instances released.
        """
        keep = self.duplicates_kept
        released: Dict[int, int] = {}
        doomed: List[OwnedCreature] = []

        rows = await self._owned_repo.list_for_release(op.session)
        for species_id, group in groupby(rows, key=lambda creature: creature.species_id):
            surplus = list(group)[keep:]
            if surplus:
                released[species_id] = len(surplus)
                doomed.extend(surplus)

        if doomed:
            await self.remove(op, doomed)

        self.log_operation(
            "release_duplicates",
            released=sum(released.values()),
            species_affected=len(released),
        )
        return released

    # ========================================================================
    # Per-instance edits
    # ========================================================================

    async def rename(self, op: OperationContext, owned_id: int, nickname: Optional[str]) -> OwnedCreature:
        cleaned = validate_nickname(nickname, self.nickname_max_length)
        creature = await self.get_for_update(op, owned_id)
        creature.nickname = cleaned
        return creature

    async def toggle_favorite(self, op: OperationContext, owned_id: int) -> OwnedCreature:
        creature = await self.get_for_update(op, owned_id)
        creature.is_favorite = not creature.is_favorite
        return creature

    async def add_creature_experience(
        self, op: OperationContext, owned_id: int, amount: int
    ) -> OwnedCreature:
        validate_non_negative(amount, "amount")
        creature = await self.get_for_update(op, owned_id)
        creature.experience += amount
        return creature

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_evolve_count(self, session: AsyncSession, species_id: int) -> int:
        return await self._owned_repo.count(session, OwnedCreature.species_id == species_id)

    async def count_owned_base_types(self, session: AsyncSession) -> int:
        """Base types with at least one instance in the collection right now."""
        return await self._owned_repo.count_owned_types(session, CreatureType.base_types())

    async def list_collection(self, session: AsyncSession) -> List[OwnedCreatureSnapshot]:
        stmt = (
            select(OwnedCreature, Species)
            .join(Species, Species.id == OwnedCreature.species_id)
            .order_by(OwnedCreature.caught_at.desc(), OwnedCreature.id.desc())
        )
        result = await session.execute(stmt)
        return [OwnedCreatureSnapshot.from_db(owned, species) for owned, species in result.all()]

    def snapshot(self, creature: OwnedCreature, species: Species) -> OwnedCreatureSnapshot:
        return OwnedCreatureSnapshot.from_db(creature, species)
