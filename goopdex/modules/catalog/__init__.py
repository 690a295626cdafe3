"""
Catalog Module
==============

Read-mostly game data seeded from `goopdex/data/catalog.yaml`:

- CatalogService: species, fusion recipes, achievement definitions, catch rates
- FusionTable: unordered type-pair lookup built from recipe rows
"""

from .service import CatalogService, FusionRule, FusionTable, canonical_pair

__all__ = ["CatalogService", "FusionRule", "FusionTable", "canonical_pair"]
