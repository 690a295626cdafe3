"""
Catalog Service
===============

Purpose
-------
Read access to the immutable game catalog (species, fusion recipes,
achievement definitions) plus the two pieces of catalog state that do
change: the sticky "discovered" flags on species and recipes.

Domain
------
- Seed the catalog from `goopdex/data/catalog.yaml` (idempotent)
- Look up species by id and the stage-1 base species of a type
- Resolve fusion recipes order-independently through a `FusionTable`
- Mark species/recipes discovered (never undone)
- Catch-rate lookup by rarity

All methods take the caller's session; the engine owns the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml
from sqlalchemy import select

from goopdex.core.logging.logger import get_logger
from goopdex.database.models.catalog import Achievement, FusionRecipe, Species
from goopdex.database.models.enums import (
    AchievementCategory,
    AchievementMetric,
    CreatureType,
)
from goopdex.domain.models.creature import FusionRecipeSnapshot, SpeciesSnapshot
from goopdex.modules.shared.base_repository import BaseRepository
from goopdex.modules.shared.base_service import BaseService
from goopdex.modules.shared.exceptions import ConfigurationError, NotFoundError
from goopdex.modules.shared.formulas import DEFAULT_CATCH_RATES, catch_rate

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from goopdex.core.config.manager import ConfigManager
    from goopdex.modules.shared.operation import OperationContext


DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "data" / "catalog.yaml"


# ============================================================================
# Repositories
# ============================================================================


class SpeciesRepository(BaseRepository[Species]):
    async def base_species_for_type(
        self, session: AsyncSession, creature_type: CreatureType
    ) -> Optional[Species]:
        rows = await self.find_many_where(
            session,
            Species.creature_type == creature_type,
            Species.evolution_stage == 1,
            Species.evolves_from_id.is_(None),
            order_by=[Species.id.asc()],
            limit=1,
        )
        return rows[0] if rows else None


class FusionRecipeRepository(BaseRepository[FusionRecipe]):
    pass


class AchievementDefinitionRepository(BaseRepository[Achievement]):
    pass


# ============================================================================
# FusionTable
# ============================================================================


@dataclass(frozen=True, slots=True)
class FusionRule:
    recipe_id: int
    inputs: frozenset
    result_type: CreatureType
    result_species_id: int


class FusionTable:
    """
    Order-independent recipe lookup keyed by the frozenset of input types.

    A same-type pair is its own one-element key, so Shadow+Shadow only
    matches when a recipe with both inputs Shadow exists.
    """

    def __init__(self, rules: Iterable[FusionRule] = ()) -> None:
        self._rules: Dict[frozenset, FusionRule] = {}
        for rule in rules:
            self._rules[rule.inputs] = rule

    @classmethod
    def from_rows(cls, rows: Iterable[FusionRecipe]) -> FusionTable:
        return cls(
            FusionRule(
                recipe_id=row.id,
                inputs=frozenset((CreatureType(row.type_a), CreatureType(row.type_b))),
                result_type=CreatureType(row.result_type),
                result_species_id=row.result_species_id,
            )
            for row in rows
        )

    def lookup(self, type_a: CreatureType, type_b: CreatureType) -> Optional[FusionRule]:
        return self._rules.get(frozenset((type_a, type_b)))

    def __len__(self) -> int:
        return len(self._rules)


def canonical_pair(type_a: CreatureType, type_b: CreatureType) -> tuple[CreatureType, CreatureType]:
    a, b = sorted((CreatureType(type_a), CreatureType(type_b)), key=lambda t: t.value)
    return a, b


# ============================================================================
# CatalogService
# ============================================================================


class CatalogService(BaseService):
    """
    Catalog provider for the progression engine.

    Public Methods
    --------------
    - seed() -> Load catalog.yaml into empty tables
    - get_species() / base_species_for_type() / list_species()
    - fusion_table() / find_recipe() / discovered_recipes()
    - mark_species_discovered() / mark_recipe_discovered()
    - catch_rate()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        logger: Optional[Logger] = None,
        catalog_path: Optional[Union[str, Path]] = None,
    ) -> None:
        super().__init__(config_manager, logger or get_logger(__name__))
        self._catalog_path = Path(catalog_path) if catalog_path else DEFAULT_CATALOG_PATH
        self._fusion_table: Optional[FusionTable] = None

        self._species_repo = SpeciesRepository(Species, get_logger(f"{__name__}.SpeciesRepository"))
        self._recipe_repo = FusionRecipeRepository(
            FusionRecipe, get_logger(f"{__name__}.FusionRecipeRepository")
        )
        self._achievement_repo = AchievementDefinitionRepository(
            Achievement, get_logger(f"{__name__}.AchievementDefinitionRepository")
        )

    # ========================================================================
    # Seeding
    # ========================================================================

    def load_seed(self) -> Dict[str, Any]:
        try:
            with self._catalog_path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                "catalog_path", f"Failed to load catalog seed {self._catalog_path}: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise ConfigurationError("catalog_path", "Catalog seed root must be a mapping")
        return data

    async def seed(self, session: AsyncSession) -> bool:
        """
        Insert catalog rows into empty tables.

        Each table is seeded only if it has no rows, so running this against
        an existing store never touches discovery flags or achievement
        progress. Returns True if anything was inserted.
        """
        data = self.load_seed()
        inserted = False

        if await self._species_repo.count(session) == 0:
            await self._seed_species(session, data.get("species", []))
            inserted = True

        if await self._recipe_repo.count(session) == 0:
            self._seed_recipes(session, data.get("fusion_recipes", []))
            inserted = True

        if await self._achievement_repo.count(session) == 0:
            self._seed_achievements(session, data.get("achievements", []))
            inserted = True

        if inserted:
            await session.flush()
            self._fusion_table = None
            self.log_operation("seed_catalog", catalog_path=str(self._catalog_path))
        return inserted

    async def _seed_species(self, session: AsyncSession, entries: List[Mapping[str, Any]]) -> None:
        rows: List[Species] = []
        links: Dict[int, tuple[Optional[int], Optional[int]]] = {}

        for entry in entries:
            health, attack, defense = entry["stats"]
            species = Species(
                id=int(entry["id"]),
                name=entry["name"],
                creature_type=CreatureType(entry["type"]),
                rarity=int(entry["rarity"]),
                base_health=int(health),
                base_attack=int(attack),
                base_defense=int(defense),
                evolution_stage=int(entry.get("stage", 1)),
                experience_to_evolve=int(entry.get("experience_to_evolve", 0)),
                description=entry.get("description", ""),
                is_discovered=False,
            )
            rows.append(species)
            links[species.id] = (entry.get("evolves_from"), entry.get("evolves_to"))

        # Evolution links are self-references; insert rows before linking them.
        self._species_repo.add_many(session, rows)
        await session.flush()

        for species in rows:
            evolves_from, evolves_to = links[species.id]
            species.evolves_from_id = evolves_from
            species.evolves_to_id = evolves_to

    def _seed_recipes(self, session: AsyncSession, entries: List[Mapping[str, Any]]) -> None:
        rows = []
        for entry in entries:
            type_a, type_b = canonical_pair(*entry["inputs"])
            rows.append(
                FusionRecipe(
                    type_a=type_a,
                    type_b=type_b,
                    result_type=CreatureType(entry["result_type"]),
                    result_species_id=int(entry["result_species"]),
                    is_discovered=False,
                )
            )
        self._recipe_repo.add_many(session, rows)

    def _seed_achievements(self, session: AsyncSession, entries: List[Mapping[str, Any]]) -> None:
        self._achievement_repo.add_many(
            session,
            [
                Achievement(
                    id=entry["id"],
                    title=entry["title"],
                    description=entry.get("description", ""),
                    category=AchievementCategory(entry["category"]),
                    metric=AchievementMetric(entry["metric"]),
                    target_progress=int(entry["target"]),
                    current_progress=0,
                    reward_experience=int(entry.get("reward_xp", 0)),
                    is_completed=False,
                )
                for entry in entries
            ],
        )

    # ========================================================================
    # Species
    # ========================================================================

    async def get_species(self, session: AsyncSession, species_id: int) -> Species:
        species = await self._species_repo.get(session, species_id)
        if species is None:
            raise NotFoundError("Species", species_id)
        return species

    async def base_species_for_type(
        self, session: AsyncSession, creature_type: CreatureType
    ) -> Species:
        species = await self._species_repo.base_species_for_type(session, creature_type)
        if species is None:
            raise NotFoundError("Species", f"base species for {creature_type.value}")
        return species

    async def list_species(
        self, session: AsyncSession, discovered_only: bool = False
    ) -> List[SpeciesSnapshot]:
        conditions = [Species.is_discovered.is_(True)] if discovered_only else []
        rows = await self._species_repo.find_many_where(
            session, *conditions, order_by=[Species.id.asc()]
        )
        return [SpeciesSnapshot.from_db(row) for row in rows]

    def mark_species_discovered(self, op: OperationContext, species: Species) -> bool:
        """Set the sticky discovered flag. Returns True the first time."""
        if species.is_discovered:
            return False

        species.is_discovered = True
        op.emit(
            "species.discovered",
            species_id=species.id,
            species_name=species.name,
            creature_type=CreatureType(species.creature_type).value,
        )
        return True

    # ========================================================================
    # Fusion
    # ========================================================================

    async def fusion_table(self, session: AsyncSession) -> FusionTable:
        """Build the table from recipe rows on first use; recipes never change."""
        if self._fusion_table is None:
            self._fusion_table = FusionTable.from_rows(await self._recipe_repo.all(session))
            self.log.debug("Fusion table built", extra={"recipe_count": len(self._fusion_table)})
        return self._fusion_table

    async def find_recipe(
        self, session: AsyncSession, type_a: CreatureType, type_b: CreatureType
    ) -> Optional[FusionRecipeSnapshot]:
        rule = (await self.fusion_table(session)).lookup(CreatureType(type_a), CreatureType(type_b))
        if rule is None:
            return None
        row = await self._recipe_repo.get(session, rule.recipe_id)
        return FusionRecipeSnapshot.from_db(row) if row is not None else None

    async def mark_recipe_discovered(self, op: OperationContext, recipe_id: int) -> bool:
        recipe = await self._recipe_repo.get(op.session, recipe_id)
        if recipe is None:
            raise NotFoundError("FusionRecipe", recipe_id)
        if recipe.is_discovered:
            return False
        recipe.is_discovered = True
        return True

    async def discovered_recipes(self, session: AsyncSession) -> List[FusionRecipeSnapshot]:
        rows = await self._recipe_repo.find_many_where(
            session,
            FusionRecipe.is_discovered.is_(True),
            order_by=[FusionRecipe.id.asc()],
        )
        return [FusionRecipeSnapshot.from_db(row) for row in rows]

    # ========================================================================
    # Catch rates
    # ========================================================================

    def catch_rate(self, rarity: int) -> float:
        configured = self.get_config("catalog.catch_rates", None)
        rates = (
            {int(key): float(value) for key, value in configured.items()}
            if isinstance(configured, Mapping)
            else DEFAULT_CATCH_RATES
        )
        default = float(self.get_config("catalog.default_catch_rate", 0.50))
        return catch_rate(rarity, rates, default)
