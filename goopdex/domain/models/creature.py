"""
Read-only views of catalog species, fusion recipes and owned creatures.

Snapshots are detached from the ORM session, so callers can hold them after
the transaction that produced them has closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from goopdex.database.models.enums import CreatureType

if TYPE_CHECKING:
    from goopdex.database.models.catalog import FusionRecipe, Species
    from goopdex.database.models.collection import OwnedCreature


@dataclass(frozen=True, slots=True)
class SpeciesSnapshot:
    id: int
    name: str
    creature_type: CreatureType
    rarity: int
    base_health: int
    base_attack: int
    base_defense: int
    evolution_stage: int
    evolves_from_id: Optional[int]
    evolves_to_id: Optional[int]
    experience_to_evolve: int
    description: str
    is_discovered: bool

    @property
    def can_evolve(self) -> bool:
        return self.evolves_to_id is not None

    @classmethod
    def from_db(cls, row: Species) -> SpeciesSnapshot:
        return cls(
            id=row.id,
            name=row.name,
            creature_type=CreatureType(row.creature_type),
            rarity=row.rarity,
            base_health=row.base_health,
            base_attack=row.base_attack,
            base_defense=row.base_defense,
            evolution_stage=row.evolution_stage,
            evolves_from_id=row.evolves_from_id,
            evolves_to_id=row.evolves_to_id,
            experience_to_evolve=row.experience_to_evolve,
            description=row.description,
            is_discovered=row.is_discovered,
        )


@dataclass(frozen=True, slots=True)
class FusionRecipeSnapshot:
    id: int
    type_a: CreatureType
    type_b: CreatureType
    result_type: CreatureType
    result_species_id: int
    is_discovered: bool

    @property
    def inputs(self) -> frozenset[CreatureType]:
        return frozenset((self.type_a, self.type_b))

    @classmethod
    def from_db(cls, row: FusionRecipe) -> FusionRecipeSnapshot:
        return cls(
            id=row.id,
            type_a=CreatureType(row.type_a),
            type_b=CreatureType(row.type_b),
            result_type=CreatureType(row.result_type),
            result_species_id=row.result_species_id,
            is_discovered=row.is_discovered,
        )


@dataclass(frozen=True, slots=True)
class OwnedCreatureSnapshot:
    """
    One owned creature plus the species fields callers usually need with it.
    """

    id: int
    species_id: int
    species_name: str
    creature_type: CreatureType
    nickname: Optional[str]
    experience: int
    caught_at: datetime
    is_favorite: bool
    latitude: Optional[float]
    longitude: Optional[float]

    @property
    def display_name(self) -> str:
        return self.nickname or self.species_name

    @classmethod
    def from_db(cls, row: OwnedCreature, species: Species) -> OwnedCreatureSnapshot:
        return cls(
            id=row.id,
            species_id=row.species_id,
            species_name=species.name,
            creature_type=CreatureType(species.creature_type),
            nickname=row.nickname,
            experience=row.experience,
            caught_at=row.caught_at,
            is_favorite=row.is_favorite,
            latitude=row.latitude,
            longitude=row.longitude,
        )
