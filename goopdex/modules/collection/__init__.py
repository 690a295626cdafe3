"""
Collection Module
=================

- CollectionLedger: owned creature instances, evolution groups, duplicate release
"""

from .service import CollectionLedger, OwnedCreatureRepository

__all__ = ["CollectionLedger", "OwnedCreatureRepository"]
