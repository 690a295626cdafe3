"""
Catalog models: species, fusion recipes and achievement definitions.
Schema only.

Catalog rows are seeded once from `goopdex/data/catalog.yaml`. After seeding
only the discovery flags and achievement progress change.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from goopdex.core.database.base import Base, IdMixin, UTCDateTime, enum_type
from goopdex.database.models.enums import AchievementCategory, AchievementMetric, CreatureType


class Species(Base, IdMixin):
    """
    A creature species.

    `is_discovered` is sticky: it flips to True the first time an instance of
    the species is owned and never flips back.
    """

    __tablename__ = "species"
    __table_args__ = (
        CheckConstraint("rarity BETWEEN 1 AND 5", name="rarity_range"),
        CheckConstraint("evolution_stage BETWEEN 1 AND 3", name="stage_range"),
        Index("ix_species_type_stage", "creature_type", "evolution_stage"),
    )

    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    creature_type: Mapped[CreatureType] = mapped_column(enum_type(CreatureType), nullable=False)
    rarity: Mapped[int] = mapped_column(Integer, nullable=False)

    base_health: Mapped[int] = mapped_column(Integer, nullable=False)
    base_attack: Mapped[int] = mapped_column(Integer, nullable=False)
    base_defense: Mapped[int] = mapped_column(Integer, nullable=False)

    evolution_stage: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    evolves_from_id: Mapped[Optional[int]] = mapped_column(ForeignKey("species.id"))
    evolves_to_id: Mapped[Optional[int]] = mapped_column(ForeignKey("species.id"))
    experience_to_evolve: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_discovered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class FusionRecipe(Base, IdMixin):
    """
    Unordered pair of input types producing a hybrid species.

    Inputs are stored in canonical order (`type_a <= type_b` by value) so the
    unique constraint covers both orderings.
    """

    __tablename__ = "fusion_recipes"
    __table_args__ = (
        UniqueConstraint("type_a", "type_b", name="uq_fusion_recipes_pair"),
        CheckConstraint("type_a <= type_b", name="canonical_pair"),
    )

    type_a: Mapped[CreatureType] = mapped_column(enum_type(CreatureType), nullable=False)
    type_b: Mapped[CreatureType] = mapped_column(enum_type(CreatureType), nullable=False)
    result_type: Mapped[CreatureType] = mapped_column(enum_type(CreatureType), nullable=False)
    result_species_id: Mapped[int] = mapped_column(ForeignKey("species.id"), nullable=False)
    is_discovered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Achievement(Base):
    """
    One-shot achievement keyed by a stable string code.

    `current_progress` mirrors the absolute value of `metric`; once
    `is_completed` is set the row is frozen.
    """

    __tablename__ = "achievements"
    __table_args__ = (
        CheckConstraint("target_progress > 0", name="positive_target"),
        Index("ix_achievements_metric_completed", "metric", "is_completed"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[AchievementCategory] = mapped_column(
        enum_type(AchievementCategory), nullable=False
    )
    metric: Mapped[AchievementMetric] = mapped_column(enum_type(AchievementMetric), nullable=False)

    target_progress: Mapped[int] = mapped_column(Integer, nullable=False)
    current_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
