"""
Integration Tests for Engine Atomicity and Serialization
========================================================

Test Coverage
-------------
- A failure anywhere in an operation leaves no partial state and publishes
  no events
- Events are published only after commit
- Concurrent evolves and fuses never consume an instance twice
- The writer lock serializes concurrent writers and times out under
  contention
"""

import asyncio

import pytest

from goopdex.modules.daily.service import ChallengeScheduler
from goopdex.modules.player.service import PlayerProfileService
from goopdex.modules.progression import LocalWriterLock, build_engine
from goopdex.modules.shared.exceptions import NotFoundError, WriterLockTimeoutError
from tests.conftest import catch_many


@pytest.mark.integration
@pytest.mark.asyncio
class TestRollback:
    async def test_failed_catch_leaves_no_trace(self, engine, events, mocker):
        await engine.generate_daily_challenges()
        events.clear()
        mocker.patch.object(
            ChallengeScheduler, "record_progress", side_effect=RuntimeError("boom")
        )

        with pytest.raises(RuntimeError):
            await engine.catch(1)

        assert await engine.collection() == []
        profile = await engine.profile()
        assert profile.total_caught == 0
        assert profile.total_experience == 0
        assert await engine.species(discovered_only=True) == []
        achievements = {a.id: a for a in await engine.achievements()}
        assert not achievements["catch_1"].is_completed
        assert events.events == []

    async def test_failed_evolve_keeps_inputs(self, engine, events, mocker):
        ids = await catch_many(engine, 1, 3)
        events.clear()
        mocker.patch.object(
            PlayerProfileService, "record_evolution", side_effect=RuntimeError("boom")
        )

        with pytest.raises(RuntimeError):
            await engine.evolve(ids[0])

        assert sorted(creature.id for creature in await engine.collection()) == ids
        discovered = [species.id for species in await engine.species(discovered_only=True)]
        assert discovered == [1]
        assert events.events == []

    async def test_failed_fuse_keeps_inputs(self, engine, mocker):
        water = await engine.catch(1)
        fire = await engine.catch(4)
        mocker.patch.object(
            PlayerProfileService, "record_fusion", side_effect=RuntimeError("boom")
        )

        with pytest.raises(RuntimeError):
            await engine.fuse(water, fire)

        assert {creature.id for creature in await engine.collection()} == {water, fire}
        assert await engine.discovered_recipes() == []

    async def test_engine_usable_after_failure(self, engine, mocker):
        patched = mocker.patch.object(
            ChallengeScheduler, "record_progress", side_effect=RuntimeError("boom")
        )
        with pytest.raises(RuntimeError):
            await engine.catch(1)

        patched.side_effect = None
        owned_id = await engine.catch(1)

        assert [creature.id for creature in await engine.collection()] == [owned_id]


@pytest.mark.integration
@pytest.mark.asyncio
class TestEventPublication:
    async def test_listeners_see_committed_state(self, engine, event_bus):
        seen = []

        async def on_caught(payload):
            seen.append((await engine.profile()).total_caught)

        event_bus.subscribe("creature.caught", on_caught, identifier="committed-state")

        await engine.catch(1)

        assert seen == [1]

    async def test_payload_envelope(self, engine, events, clock):
        await engine.catch(1)

        payload = events.of("creature.caught")[0]
        assert payload["event_name"] == "creature.caught"
        assert payload["occurred_at"] == clock.now().isoformat()


@pytest.mark.integration
@pytest.mark.asyncio
class TestWriterLock:
    async def test_concurrent_catches_are_serialized(self, engine):
        ids = await asyncio.gather(*(engine.catch(1) for _ in range(5)))

        assert len(set(ids)) == 5
        assert (await engine.profile()).total_caught == 5

    async def test_concurrent_evolves_each_consume_three(self, engine):
        ids = await catch_many(engine, 1, 6)

        first, second = await asyncio.gather(engine.evolve(ids[5]), engine.evolve(ids[4]))

        assert first is not None and second is not None
        assert first.id != second.id
        collection = await engine.collection()
        assert sorted(creature.species_id for creature in collection) == [2, 2]
        assert (await engine.profile()).total_evolved == 2

    async def test_overlapping_fuses_share_one_input(self, engine):
        water = await engine.catch(1)
        fire = await engine.catch(4)
        other_water = await engine.catch(1)

        results = await asyncio.gather(
            engine.fuse(water, fire),
            engine.fuse(other_water, fire),
            return_exceptions=True,
        )

        fused = [result for result in results if not isinstance(result, BaseException)]
        assert len(fused) == 1
        assert fused[0].species_id == 16
        loser = next(result for result in results if result is not fused[0])
        assert loser is None or isinstance(loser, NotFoundError)

        collection = await engine.collection()
        assert sorted(creature.species_id for creature in collection) == [1, 16]
        assert fire not in {creature.id for creature in collection}
        assert (await engine.profile()).total_fused == 1

    async def test_contention_times_out(self, database, config_manager, clock, rng, event_bus):
        lock = LocalWriterLock(timeout_seconds=0.05)
        engine = build_engine(
            database=database,
            config_manager=config_manager,
            clock=clock,
            rng=rng,
            writer_lock=lock,
            event_bus=event_bus,
        )
        await engine.bootstrap()

        async with lock.hold():
            with pytest.raises(WriterLockTimeoutError):
                await engine.catch(1)

        assert await engine.collection() == []
        assert await engine.catch(1) > 0
