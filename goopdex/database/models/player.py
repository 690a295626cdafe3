"""
PlayerProfile: singleton aggregate of lifetime progression counters.
Schema only.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from goopdex.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime

PROFILE_ID = 1


class PlayerProfile(Base, IdMixin, TimestampMixin):
    """
    Exactly one row, id fixed to PROFILE_ID.

    Level is derived from `total_experience` and never stored.
    """

    __tablename__ = "player_profile"
    __table_args__ = (
        CheckConstraint("total_experience >= 0", name="non_negative_experience"),
        CheckConstraint("daily_streak >= 0", name="non_negative_streak"),
    )

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    total_caught: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_evolved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_fused: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_challenges_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    daily_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    total_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
