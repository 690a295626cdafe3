"""
Integration Tests for DatabaseService
=====================================

Purpose
-------
Exercise the async store against in-memory SQLite: lifecycle, schema
creation, commit/rollback semantics and the catalog seed.

Testing Strategy
----------------
- Real SQLAlchemy engine (aiosqlite), no mocks
- Fresh database per test
"""

import pytest
from sqlalchemy import func, select, text

from goopdex.core.database.service import DatabaseNotInitializedError, DatabaseService
from goopdex.database.models import Achievement, FusionRecipe, PlayerProfile, Species
from goopdex.modules.catalog.service import CatalogService


# ============================================================================
# LIFECYCLE
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestDatabaseLifecycle:
    async def test_health_check(self, database):
        assert await database.health_check() is True

    async def test_uninitialized_service(self):
        service = DatabaseService("sqlite+aiosqlite:///:memory:")

        assert service.is_initialized is False
        assert await service.health_check() is False
        with pytest.raises(DatabaseNotInitializedError):
            async with service.get_session():
                pass

    async def test_initialize_is_idempotent(self, database):
        engine = database.engine
        await database.initialize()
        assert database.engine is engine

    async def test_schema_created(self, database):
        async with database.get_session() as session:
            result = await session.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'table'")
            )
            tables = {row[0] for row in result}

        assert {
            "species",
            "fusion_recipes",
            "achievements",
            "owned_creatures",
            "player_profile",
            "challenge_batches",
            "daily_challenges",
        } <= tables

    async def test_foreign_keys_enforced(self, database):
        async with database.get_session() as session:
            result = await session.execute(text("PRAGMA foreign_keys"))
            assert result.scalar_one() == 1


# ============================================================================
# TRANSACTIONS
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestTransactions:
    async def test_commit_on_success(self, database, config_manager):
        catalog = CatalogService(config_manager)
        async with database.get_transaction() as session:
            await catalog.seed(session)

        async with database.get_session() as session:
            count = (await session.execute(select(func.count(Species.id)))).scalar_one()
        assert count == 20

    async def test_rollback_on_exception(self, database, config_manager):
        catalog = CatalogService(config_manager)

        with pytest.raises(RuntimeError):
            async with database.get_transaction() as session:
                await catalog.seed(session)
                raise RuntimeError("abort")

        async with database.get_session() as session:
            count = (await session.execute(select(func.count(Species.id)))).scalar_one()
        assert count == 0


# ============================================================================
# CATALOG SEED
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestCatalogSeed:
    async def test_seed_contents(self, engine, database):
        async with database.get_session() as session:
            species = (await session.execute(select(func.count(Species.id)))).scalar_one()
            recipes = (await session.execute(select(func.count(FusionRecipe.id)))).scalar_one()
            achievements = (await session.execute(select(func.count(Achievement.id)))).scalar_one()
            profiles = (await session.execute(select(func.count(PlayerProfile.id)))).scalar_one()

        assert (species, recipes, achievements, profiles) == (20, 5, 9, 1)

    async def test_evolution_links(self, engine, database):
        async with database.get_session() as session:
            droplet = await session.get(Species, 1)
            aqua = await session.get(Species, 2)

        assert droplet.evolves_to_id == 2
        assert aqua.evolves_from_id == 1
        assert aqua.evolves_to_id == 3

    async def test_bootstrap_twice_is_idempotent(self, engine, database):
        await engine.bootstrap()

        async with database.get_session() as session:
            species = (await session.execute(select(func.count(Species.id)))).scalar_one()
            profiles = (await session.execute(select(func.count(PlayerProfile.id)))).scalar_one()

        assert species == 20
        assert profiles == 1

    async def test_nothing_discovered_initially(self, engine):
        assert await engine.species(discovered_only=True) == []
        assert await engine.discovered_recipes() == []
