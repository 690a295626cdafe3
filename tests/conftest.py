"""
Pytest Configuration and Fixtures for the Goopdex Test Suite
============================================================

Purpose
-------
Centralized fixtures for unit and integration tests: configuration, a
deterministic clock and random source, an in-memory SQLite store, an event
recorder and a fully wired, bootstrapped engine.

Architecture Notes
------------------
- Unit tests use plain objects and pytest-mock (fast, isolated)
- Integration tests run the real engine against `sqlite+aiosqlite:///:memory:`
- Every test gets a fresh database (function scope)
"""

from __future__ import annotations

import os
import random
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List

import pytest
import pytest_asyncio

from goopdex.core.clock import FixedClock
from goopdex.core.config.manager import ConfigManager
from goopdex.core.database.service import DatabaseService
from goopdex.core.event.bus import EventBus
from goopdex.core.logging.logger import get_logger
from goopdex.modules.progression import LocalWriterLock, ProgressionEngine, build_engine

logger = get_logger(__name__)

START = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
RNG_SEED = 1234


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("LOG_LEVEL", "DEBUG")


# ============================================================================
# COLLABORATORS
# ============================================================================


@pytest.fixture
def config_manager() -> ConfigManager:
    return ConfigManager.from_directory()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(RNG_SEED)


@pytest.fixture
def event_bus(config_manager: ConfigManager) -> EventBus:
    return EventBus(config_manager)


class EventRecorder:
    """Collects every payload published on the bus, in order."""

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    async def record(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)

    def names(self) -> List[str]:
        return [event["event_name"] for event in self.events]

    def of(self, event_name: str) -> List[Dict[str, Any]]:
        return [event for event in self.events if event["event_name"] == event_name]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture
def events(event_bus: EventBus) -> EventRecorder:
    recorder = EventRecorder()
    event_bus.subscribe("*", recorder.record, identifier="test-recorder")
    return recorder


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[DatabaseService, None]:
    """
    Fresh in-memory SQLite store with the schema created.

    Scope: function (clean slate per test)
    """
    service = DatabaseService("sqlite+aiosqlite:///:memory:", echo=False)
    await service.initialize()
    await service.create_schema()

    yield service

    await service.shutdown()


# ============================================================================
# ENGINE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def engine(
    database: DatabaseService,
    config_manager: ConfigManager,
    clock: FixedClock,
    rng: random.Random,
    event_bus: EventBus,
    events: EventRecorder,
) -> ProgressionEngine:
    """Engine wired against the in-memory store, bootstrapped, with events cleared."""
    engine = build_engine(
        database=database,
        config_manager=config_manager,
        clock=clock,
        rng=rng,
        writer_lock=LocalWriterLock(timeout_seconds=1.0),
        event_bus=event_bus,
    )
    await engine.bootstrap()
    events.clear()
    return engine


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


async def catch_many(engine: ProgressionEngine, species_id: int, count: int) -> List[int]:
    """Catch `count` instances of one species and return their ids."""
    return [await engine.catch(species_id) for _ in range(count)]
