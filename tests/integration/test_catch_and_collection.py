"""
Integration Tests for Catching and the Collection Ledger
========================================================

Test Coverage
-------------
- catch(): instance creation, counters, XP, discovery, catch achievements
- release_duplicates(): newest three per species survive
- Per-instance edits: rename, favorite, experience
- Collection reads and catalog reads
"""

import pytest

from goopdex.database.models.enums import CreatureType
from goopdex.modules.shared.exceptions import NotFoundError, ValidationError
from tests.conftest import catch_many

BASE_SPECIES = {
    CreatureType.WATER: 1,
    CreatureType.FIRE: 4,
    CreatureType.NATURE: 7,
    CreatureType.ELECTRIC: 10,
    CreatureType.SHADOW: 13,
}


# ============================================================================
# CATCH
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestCatch:
    async def test_catch_creates_instance(self, engine, clock):
        owned_id = await engine.catch(1, latitude=48.85, longitude=2.35)

        collection = await engine.collection()
        assert [creature.id for creature in collection] == [owned_id]

        creature = collection[0]
        assert creature.species_id == 1
        assert creature.species_name == "Droplet Goop"
        assert creature.creature_type is CreatureType.WATER
        assert creature.experience == 0
        assert creature.caught_at == clock.now()
        assert (creature.latitude, creature.longitude) == (48.85, 2.35)
        assert creature.nickname is None
        assert creature.is_favorite is False

    async def test_catch_updates_profile(self, engine):
        await engine.catch(1)

        profile = await engine.profile()
        assert profile.total_caught == 1
        # 25 for the catch + 50 for "First Catch".
        assert profile.total_experience == 75

    async def test_catch_marks_species_discovered(self, engine):
        await engine.catch(4)

        discovered = await engine.species(discovered_only=True)
        assert [species.id for species in discovered] == [4]

    async def test_discovery_is_sticky(self, engine):
        """Releasing or evolving away every instance never clears discovery."""
        ids = await catch_many(engine, 1, 3)
        await engine.evolve(ids[0])

        discovered = {species.id for species in await engine.species(discovered_only=True)}
        assert {1, 2} <= discovered
        assert await engine.get_evolve_count(1) == 0

    async def test_unknown_species(self, engine):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.catch(999)

        assert exc_info.value.resource_type == "Species"
        profile = await engine.profile()
        assert profile.total_caught == 0
        assert await engine.collection() == []

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"species_id": 0},
            {"species_id": 1, "latitude": 95.0, "longitude": 0.0},
            {"species_id": 1, "latitude": 10.0},
        ],
    )
    async def test_invalid_input(self, engine, kwargs):
        with pytest.raises(ValidationError):
            await engine.catch(**kwargs)

    async def test_catch_achievements(self, engine):
        await catch_many(engine, 1, 10)

        achievements = {a.id: a for a in await engine.achievements()}
        assert achievements["catch_1"].is_completed
        assert achievements["catch_10"].is_completed
        assert not achievements["catch_50"].is_completed
        assert achievements["catch_50"].current_progress == 10

    async def test_one_of_each_base_type(self, engine):
        for species_id in BASE_SPECIES.values():
            await engine.catch(species_id)

        achievements = {a.id: a for a in await engine.achievements()}
        assert achievements["all_types"].is_completed
        assert achievements["all_types"].current_progress == 5

    async def test_fused_away_types_do_not_count(self, engine):
        water = await engine.catch(BASE_SPECIES[CreatureType.WATER])
        fire = await engine.catch(BASE_SPECIES[CreatureType.FIRE])
        await engine.fuse(water, fire)
        for creature_type in (CreatureType.NATURE, CreatureType.ELECTRIC, CreatureType.SHADOW):
            await engine.catch(BASE_SPECIES[creature_type])

        all_types = {a.id: a for a in await engine.achievements()}["all_types"]
        assert not all_types.is_completed
        assert all_types.current_progress == 3

    async def test_type_progress_keeps_its_highest_value(self, engine):
        water = await engine.catch(BASE_SPECIES[CreatureType.WATER])
        fire = await engine.catch(BASE_SPECIES[CreatureType.FIRE])
        await engine.fuse(water, fire)
        await engine.catch(BASE_SPECIES[CreatureType.WATER])

        all_types = {a.id: a for a in await engine.achievements()}["all_types"]
        assert all_types.current_progress == 2

        await engine.catch(BASE_SPECIES[CreatureType.FIRE])
        await engine.catch(BASE_SPECIES[CreatureType.NATURE])
        all_types = {a.id: a for a in await engine.achievements()}["all_types"]
        assert all_types.current_progress == 3

    async def test_catching_back_fused_types_completes(self, engine):
        water = await engine.catch(BASE_SPECIES[CreatureType.WATER])
        fire = await engine.catch(BASE_SPECIES[CreatureType.FIRE])
        await engine.fuse(water, fire)
        for species_id in BASE_SPECIES.values():
            await engine.catch(species_id)

        all_types = {a.id: a for a in await engine.achievements()}["all_types"]
        assert all_types.is_completed
        assert all_types.current_progress == 5

    async def test_catch_events(self, engine, events):
        owned_id = await engine.catch(1)

        assert events.names() == ["creature.caught", "species.discovered", "achievement.completed"]
        caught = events.of("creature.caught")[0]
        assert caught["owned_id"] == owned_id
        assert caught["creature_type"] == "water"
        assert events.of("achievement.completed")[0]["achievement_id"] == "catch_1"

    async def test_level_up_event(self, engine, events, config_manager):
        config_manager.set_override("progression.xp.catch", 1000)

        await engine.catch(1)

        leveled = events.of("player.leveled_up")
        assert leveled[0]["old_level"] == 1
        assert leveled[0]["new_level"] == 2
        assert (await engine.profile()).level == 2


# ============================================================================
# RELEASE DUPLICATES
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestReleaseDuplicates:
    async def test_keeps_newest_three_per_species(self, engine, clock):
        water_ids = []
        for _ in range(5):
            water_ids.append(await engine.catch(1))
            clock.advance(minutes=1)
        fire_ids = await catch_many(engine, 4, 2)

        released = await engine.release_duplicates()

        assert released == 2
        remaining = {creature.id for creature in await engine.collection()}
        assert remaining == set(water_ids[2:]) | set(fire_ids)

    async def test_ties_broken_by_newest_id(self, engine):
        ids = await catch_many(engine, 1, 4)

        assert await engine.release_duplicates() == 1
        remaining = {creature.id for creature in await engine.collection()}
        assert remaining == set(ids[1:])

    async def test_caught_at_wins_over_id(self, engine, clock):
        """An older id caught later is kept over newer ids caught earlier."""
        clock.advance(days=1)
        late = await engine.catch(1)
        clock.advance(days=-1)
        early = await catch_many(engine, 1, 3)

        await engine.release_duplicates()

        remaining = {creature.id for creature in await engine.collection()}
        assert late in remaining
        assert remaining == {late, early[1], early[2]}

    async def test_nothing_to_release(self, engine, events):
        await catch_many(engine, 1, 3)
        events.clear()

        assert await engine.release_duplicates() == 0
        assert events.of("creature.released") == []

    async def test_release_event(self, engine, events):
        await catch_many(engine, 1, 5)
        events.clear()

        await engine.release_duplicates()

        released = events.of("creature.released")
        assert released[0]["count"] == 2
        assert released[0]["by_species"] == {1: 2}


# ============================================================================
# PER-INSTANCE EDITS
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestInstanceEdits:
    async def test_rename(self, engine):
        owned_id = await engine.catch(1)

        renamed = await engine.rename(owned_id, "  Bubbles ")

        assert renamed.nickname == "Bubbles"
        assert renamed.display_name == "Bubbles"

    async def test_rename_blank_clears(self, engine):
        owned_id = await engine.catch(1)
        await engine.rename(owned_id, "Bubbles")

        cleared = await engine.rename(owned_id, "")

        assert cleared.nickname is None
        assert cleared.display_name == "Droplet Goop"

    async def test_rename_too_long(self, engine):
        owned_id = await engine.catch(1)
        with pytest.raises(ValidationError):
            await engine.rename(owned_id, "x" * 100)

    async def test_toggle_favorite(self, engine):
        owned_id = await engine.catch(1)

        assert (await engine.toggle_favorite(owned_id)).is_favorite is True
        assert (await engine.toggle_favorite(owned_id)).is_favorite is False

    async def test_add_experience(self, engine):
        owned_id = await engine.catch(1)

        await engine.add_creature_experience(owned_id, 30)
        updated = await engine.add_creature_experience(owned_id, 12)

        assert updated.experience == 42

    async def test_edits_on_unknown_instance(self, engine):
        with pytest.raises(NotFoundError):
            await engine.toggle_favorite(12345)


# ============================================================================
# READS
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestReads:
    async def test_collection_newest_first(self, engine, clock):
        first = await engine.catch(1)
        clock.advance(minutes=5)
        second = await engine.catch(4)

        assert [creature.id for creature in await engine.collection()] == [second, first]

    async def test_get_evolve_count(self, engine):
        await catch_many(engine, 1, 2)
        await engine.catch(4)

        assert await engine.get_evolve_count(1) == 2
        assert await engine.get_evolve_count(4) == 1
        assert await engine.get_evolve_count(7) == 0

    async def test_catch_rate_uses_config(self, engine, config_manager):
        assert engine.catch_rate(1) == pytest.approx(0.70)
        assert engine.catch_rate(5) == pytest.approx(0.15)
        assert engine.catch_rate(8) == pytest.approx(0.50)

    async def test_all_species_listed(self, engine):
        species = await engine.species()
        assert len(species) == 20
        assert species[0].name == "Droplet Goop"
        assert species[0].can_evolve

    async def test_rename_player(self, engine):
        profile = await engine.rename_player(" Misty ")
        assert profile.name == "Misty"
        assert (await engine.profile()).name == "Misty"
