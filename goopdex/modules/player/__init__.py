"""
Player Module
=============

- PlayerProfileService: lifetime counters, experience and level, login streak
"""

from .service import PlayerProfileRepository, PlayerProfileService

__all__ = ["PlayerProfileService", "PlayerProfileRepository"]
