"""
Daily challenge models: a batch of exactly three challenges sharing one
expiry, plus the bonus-paid flag for the all-challenges reward.
Schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from goopdex.core.database.base import Base, IdMixin, UTCDateTime, enum_type
from goopdex.database.models.enums import ChallengeType, CreatureType


class ChallengeBatch(Base, IdMixin):
    """
    One day's set of challenges.

    Deleting a batch deletes its challenges.
    """

    __tablename__ = "challenge_batches"
    __table_args__ = (
        Index("ix_challenge_batches_expires_at", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    bonus_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bonus_paid_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    challenges: Mapped[List["DailyChallenge"]] = relationship(
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DailyChallenge.id",
        lazy="selectin",
    )


class DailyChallenge(Base, IdMixin):
    __tablename__ = "daily_challenges"
    __table_args__ = (
        CheckConstraint("target_count > 0", name="positive_target"),
        CheckConstraint("current_progress >= 0", name="non_negative_progress"),
        Index("ix_daily_challenges_type_completed", "challenge_type", "is_completed"),
        {"sqlite_autoincrement": True},
    )

    batch_id: Mapped[int] = mapped_column(
        ForeignKey("challenge_batches.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    challenge_type: Mapped[ChallengeType] = mapped_column(enum_type(ChallengeType), nullable=False)
    target_type: Mapped[Optional[CreatureType]] = mapped_column(enum_type(CreatureType))
    target_count: Mapped[int] = mapped_column(Integer, nullable=False)
    current_progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    reward_experience: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)

    batch: Mapped[ChallengeBatch] = relationship(back_populates="challenges")
