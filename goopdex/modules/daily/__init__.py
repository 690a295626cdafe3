"""
Daily Module
============

- ChallengeScheduler: daily challenge batches, progress, all-complete bonus
"""

from .service import ChallengeBatchRepository, ChallengeScheduler, DailyChallengeRepository

__all__ = ["ChallengeScheduler", "ChallengeBatchRepository", "DailyChallengeRepository"]
