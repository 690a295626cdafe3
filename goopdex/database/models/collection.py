"""
OwnedCreature: one creature instance in the player's collection.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from goopdex.core.database.base import Base, IdMixin, UTCDateTime


class OwnedCreature(Base, IdMixin):
    """
    Created by catch, evolve, fuse and the daily bonus; destroyed by evolve,
    fuse and release. Always references an existing species.
    """

    __tablename__ = "owned_creatures"
    __table_args__ = (
        Index("ix_owned_creatures_species_caught", "species_id", "caught_at"),
        # Ids are never reused after evolve, fuse or release.
        {"sqlite_autoincrement": True},
    )

    species_id: Mapped[int] = mapped_column(
        ForeignKey("species.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    nickname: Mapped[Optional[str]] = mapped_column(String(64))
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    caught_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
