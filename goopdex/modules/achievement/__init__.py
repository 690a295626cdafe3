"""Achievement Module: one-shot achievements driven by lifetime metrics."""

from .service import AchievementRepository, AchievementTracker

__all__ = ["AchievementTracker", "AchievementRepository"]
