"""
Progression Module
==================

Public entry point of the engine.

Usage
-----
    from goopdex.modules.progression import build_engine

    engine = build_engine()
    await engine.bootstrap()
    owned_id = await engine.catch(species_id=1)
"""

from .locks import LocalWriterLock, RedisWriterLock, WriterLock
from .service import ProgressionEngine, build_engine

__all__ = [
    "ProgressionEngine",
    "build_engine",
    "WriterLock",
    "LocalWriterLock",
    "RedisWriterLock",
]
