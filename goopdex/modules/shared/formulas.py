"""
Goopdex Game Formulas

Purpose
-------
Pure calculation functions for the progression rules: level curve, fused
experience, login-streak day arithmetic and catch rates.

Design Notes
------------
All formulas:
- Accept parameters explicitly (tunables come from ConfigManager at the call site)
- Have no side effects and no database access
- Are deterministic and testable

Usage
-----
    from goopdex.modules.shared.formulas import calculate_level, login_day_difference

    level = calculate_level(2500)            # 3
    days = login_day_difference(last, now, tz)
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Mapping, Optional

SECONDS_PER_DAY = 86_400


def calculate_level(total_experience: int, experience_per_level: int = 1000) -> int:
    """
    Player level from lifetime experience.

    Level is `floor(total_experience / experience_per_level) + 1`.

    Example:
        >>> calculate_level(0)
        1
        >>> calculate_level(999)
        1
        >>> calculate_level(1000)
        2
    """
    if total_experience <= 0:
        return 1
    return total_experience // experience_per_level + 1


def fused_experience(experience_a: int, experience_b: int) -> int:
    """
    Experience carried into a fused creature: the floor of the inputs' mean.

    Example:
        >>> fused_experience(10, 5)
        7
    """
    return (experience_a + experience_b) // 2


def login_day_difference(previous: datetime, now: datetime, tz: tzinfo) -> int:
    """
    Number of calendar days between two logins as seen in `tz`.

    Within one year the day-of-year ordinals are compared. Across a year
    boundary the elapsed wall time is floored to whole days, so a login at
    23:00 on Dec 31 followed by 01:00 on Jan 1 counts as 0 days.

    Example:
        >>> login_day_difference(datetime(2024, 3, 1, 23, tzinfo=timezone.utc),
        ...                      datetime(2024, 3, 2, 1, tzinfo=timezone.utc), timezone.utc)
        1
    """
    prev_local = previous.astimezone(tz)
    now_local = now.astimezone(tz)

    if prev_local.year == now_local.year:
        return now_local.timetuple().tm_yday - prev_local.timetuple().tm_yday

    return int((now_local - prev_local).total_seconds() // SECONDS_PER_DAY)


def next_streak(current_streak: int, day_difference: int) -> int:
    """
    Streak after a login `day_difference` days after the previous one.

    Same day keeps the streak, the next day extends it, anything else
    (including a clock that moved backwards) restarts it at 1.
    """
    if day_difference == 0:
        return current_streak
    if day_difference == 1:
        return current_streak + 1
    return 1


def streak_bonus(streak: int, multiplier: int = 10) -> int:
    """Login bonus experience for reaching `streak` consecutive days."""
    return max(streak, 0) * multiplier


def catch_rate(
    rarity: int,
    rates: Optional[Mapping[int, float]] = None,
    default: float = 0.50,
) -> float:
    """
    Base catch probability for a species rarity.

    Example:
        >>> catch_rate(1)
        0.7
        >>> catch_rate(9)
        0.5
    """
    table = rates if rates is not None else DEFAULT_CATCH_RATES
    return float(table.get(rarity, default))


DEFAULT_CATCH_RATES: Mapping[int, float] = {
    1: 0.70,
    2: 0.55,
    3: 0.40,
    4: 0.25,
    5: 0.15,
}
