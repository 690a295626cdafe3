"""
Integration Tests for the Challenge Scheduler
=============================================

Test Coverage
-------------
- Batch generation: three challenges, expiry at next local midnight
- Idempotence within a day, replacement after expiry
- Progress from catches, evolutions and fusions
- Completion rewards and the all-challenges bonus (paid once per batch)
- Invariant checks on corrupted batch state

Batches are generated from the seeded RNG, so tests read the generated
targets instead of assuming them.
"""

from datetime import datetime, timedelta, timezone

import pytest

from goopdex.database.models.enums import ChallengeType, CreatureType
from goopdex.database.models.progression import ChallengeBatch, DailyChallenge
from goopdex.modules.shared.exceptions import InvariantViolationError
from tests.conftest import START, catch_many

BASE_SPECIES = {
    CreatureType.WATER: 1,
    CreatureType.FIRE: 4,
    CreatureType.NATURE: 7,
    CreatureType.ELECTRIC: 10,
    CreatureType.SHADOW: 13,
}

# Species that fuses with the given base type.
FUSION_PARTNER = {
    CreatureType.WATER: 4,
    CreatureType.FIRE: 1,
    CreatureType.NATURE: 4,
    CreatureType.ELECTRIC: 1,
    CreatureType.SHADOW: 13,
}


def by_type(challenges):
    return {challenge.challenge_type: challenge for challenge in challenges}


async def complete_all(engine):
    """Drive every challenge of the active batch to completion."""
    challenges = by_type(await engine.generate_daily_challenges())
    catch_any = challenges[ChallengeType.CATCH_ANY]
    catch_type = challenges[ChallengeType.CATCH_TYPE]

    target = catch_type.target_type
    count = max(catch_any.target_count, catch_type.target_count, 3)
    ids = await catch_many(engine, BASE_SPECIES[target], count)

    if ChallengeType.EVOLVE in challenges:
        await engine.evolve(ids[0])
    else:
        partner = await engine.catch(FUSION_PARTNER[target])
        await engine.fuse(ids[0], partner)
    return challenges


# ============================================================================
# GENERATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestGeneration:
    async def test_batch_shape(self, engine):
        challenges = await engine.generate_daily_challenges()

        assert len(challenges) == 3
        kinds = [challenge.challenge_type for challenge in challenges]
        assert kinds[:2] == [ChallengeType.CATCH_ANY, ChallengeType.CATCH_TYPE]
        assert kinds[2] in (ChallengeType.EVOLVE, ChallengeType.FUSE)
        assert len({challenge.batch_id for challenge in challenges}) == 1

    async def test_targets_within_configured_ranges(self, engine):
        challenges = by_type(await engine.generate_daily_challenges())

        assert 2 <= challenges[ChallengeType.CATCH_ANY].target_count <= 4
        catch_type = challenges[ChallengeType.CATCH_TYPE]
        assert 1 <= catch_type.target_count <= 2
        assert catch_type.target_type in CreatureType.base_types()
        assert catch_type.title == f"{catch_type.target_type.display_name} Hunter"
        assert challenges[ChallengeType.CATCH_ANY].target_type is None

    async def test_expires_at_next_midnight(self, engine):
        challenges = await engine.generate_daily_challenges()

        midnight = datetime(2026, 3, 11, tzinfo=timezone.utc)
        assert all(challenge.expires_at == midnight for challenge in challenges)
        assert all(challenge.created_at == START for challenge in challenges)

    async def test_idempotent_within_a_day(self, engine, clock, events):
        first = await engine.generate_daily_challenges()
        clock.advance(hours=10)

        second = await engine.generate_daily_challenges()

        assert [c.id for c in second] == [c.id for c in first]
        assert len(events.of("challenge.batch_generated")) == 1

    async def test_new_batch_after_midnight(self, engine, clock, database):
        first = await engine.generate_daily_challenges()
        clock.set(datetime(2026, 3, 11, 0, 0, tzinfo=timezone.utc))

        assert await engine.active_challenges() == []
        second = await engine.generate_daily_challenges()

        assert {c.batch_id for c in second}.isdisjoint({c.batch_id for c in first})
        async with database.get_session() as session:
            assert await session.get(ChallengeBatch, first[0].batch_id) is None
            assert await session.get(DailyChallenge, first[0].id) is None

    async def test_catch_any_description(self, engine):
        challenges = await engine.generate_daily_challenges()
        assert challenges[0].description == (
            f"Catch any {challenges[0].target_count} Goop creatures today"
        )

    async def test_second_active_batch_is_rejected(self, engine, database):
        await engine.generate_daily_challenges()
        async with database.get_transaction() as session:
            session.add(
                ChallengeBatch(
                    created_at=START,
                    expires_at=START + timedelta(hours=2),
                    bonus_paid=False,
                )
            )

        with pytest.raises(InvariantViolationError) as exc_info:
            await engine.generate_daily_challenges()
        assert exc_info.value.invariant == "single_active_batch"


# ============================================================================
# PROGRESS
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestProgress:
    async def test_no_batch_no_progress(self, engine):
        await engine.catch(1)
        assert await engine.active_challenges() == []

    async def test_catch_advances_catch_any(self, engine):
        await engine.generate_daily_challenges()

        await engine.catch(1)

        challenges = by_type(await engine.active_challenges())
        assert challenges[ChallengeType.CATCH_ANY].current_progress == 1

    async def test_catch_type_only_counts_matching_type(self, engine):
        challenges = by_type(await engine.generate_daily_challenges())
        target = challenges[ChallengeType.CATCH_TYPE].target_type
        other = next(t for t in CreatureType.base_types() if t is not target)

        await engine.catch(BASE_SPECIES[other])
        after_other = by_type(await engine.active_challenges())
        assert after_other[ChallengeType.CATCH_TYPE].current_progress == 0

        await engine.catch(BASE_SPECIES[target])
        after_target = by_type(await engine.active_challenges())
        assert after_target[ChallengeType.CATCH_TYPE].current_progress == 1

    async def test_progress_stops_at_target(self, engine):
        challenges = by_type(await engine.generate_daily_challenges())
        target = challenges[ChallengeType.CATCH_ANY].target_count

        await catch_many(engine, 1, target + 2)

        catch_any = by_type(await engine.active_challenges())[ChallengeType.CATCH_ANY]
        assert catch_any.is_completed
        assert catch_any.current_progress == target

    async def test_completion_rewards(self, engine, events):
        challenges = by_type(await engine.generate_daily_challenges())
        catch_any = challenges[ChallengeType.CATCH_ANY]

        await catch_many(engine, 1, catch_any.target_count)

        completed = [e for e in events.of("challenge.completed") if e["challenge_id"] == catch_any.id]
        assert completed[0]["reward_experience"] == 50
        assert (await engine.profile()).total_challenges_completed >= 1

    async def test_expired_challenges_stop_counting(self, engine, clock):
        await engine.generate_daily_challenges()
        clock.advance(days=1)

        await engine.catch(1)

        assert await engine.active_challenges() == []
        assert (await engine.profile()).total_challenges_completed == 0


# ============================================================================
# ALL-CHALLENGES BONUS
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestAllChallengesBonus:
    async def test_bonus_paid_on_last_completion(self, engine, events):
        await complete_all(engine)

        challenges = await engine.active_challenges()
        assert all(challenge.is_completed for challenge in challenges)

        granted = events.of("challenge.bonus_granted")
        assert len(granted) == 1
        assert len(granted[0]["owned_ids"]) == 2

        collection_ids = {creature.id for creature in await engine.collection()}
        assert set(granted[0]["owned_ids"]) <= collection_ids

    async def test_bonus_creatures_are_base_species(self, engine, events):
        await complete_all(engine)

        owned_ids = set(events.of("challenge.bonus_granted")[0]["owned_ids"])
        bonus = [creature for creature in await engine.collection() if creature.id in owned_ids]
        assert all(creature.species_id in BASE_SPECIES.values() for creature in bonus)

        discovered = {species.id for species in await engine.species(discovered_only=True)}
        assert {creature.species_id for creature in bonus} <= discovered

    async def test_bonus_counts_as_caught(self, engine, events):
        await complete_all(engine)

        caught_events = len(events.of("creature.caught"))
        assert (await engine.profile()).total_caught == caught_events + 2

    async def test_total_challenges_completed(self, engine):
        await complete_all(engine)

        assert (await engine.profile()).total_challenges_completed == 3

    async def test_bonus_paid_once(self, engine, events):
        await complete_all(engine)

        assert await engine.all_challenges_bonus_check() is False
        assert await engine.all_challenges_bonus_check() is False
        assert len(events.of("challenge.bonus_granted")) == 1

    async def test_no_batch(self, engine):
        assert await engine.all_challenges_bonus_check() is False

    async def test_incomplete_batch(self, engine):
        await engine.generate_daily_challenges()
        await engine.catch(1)

        assert await engine.all_challenges_bonus_check() is False
        assert len(await engine.collection()) == 1
