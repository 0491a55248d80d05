"""
Unit tests for the daily minigame and minigame leaderboards.
"""

import random
from datetime import date, timedelta

import pytest

from realm.game.inventory_service import InventoryService
from realm.game.minigame_service import MinigameService, period_bounds
from realm.models.base import utcnow


class ScriptedRandom(random.Random):
    """randint answers from a script; everything else is seeded."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def randint(self, a, b):
        return self._values.pop(0)


def test_period_bounds():
    """Test weekly windows start on Monday and monthly windows cover the month."""
    wednesday = date(2026, 3, 11)
    assert period_bounds("daily", wednesday) == (wednesday, wednesday)
    assert period_bounds("weekly", wednesday) == (date(2026, 3, 9), date(2026, 3, 15))
    assert period_bounds("monthly", date(2028, 2, 10)) == (date(2028, 2, 1), date(2028, 2, 29))


def test_roll_reward_type_follows_streak_odds(db_session):
    """Test the reward roll walks the cumulative chance table."""
    service = MinigameService(db_session, rng=ScriptedRandom([60, 61, 96, 90]))
    assert service.roll_reward_type(1) == "common"
    assert service.roll_reward_type(1) == "uncommon"
    assert service.roll_reward_type(1) == "epic"
    assert service.roll_reward_type(5) == "epic"


@pytest.mark.asyncio
async def test_daily_play_and_streak(db_session, user):
    """Test one play per day and a streak that grows on consecutive days."""
    day = date(2026, 3, 10)
    service = MinigameService(db_session, rng=ScriptedRandom([1, 120, 1, 80]))

    result = await service.play(user, today=day)
    assert result["message"] == "You won a common reward!"
    assert result["streak"] == 1
    assert user.gold == 1120

    again = await service.play(user, today=day)
    assert again["message"] == "You have already played today. Come back tomorrow!"
    assert again["streak"] == 1

    result = await service.play(user, today=day + timedelta(days=1))
    assert result["streak"] == 2
    assert await service.get_current_streak(user, today=day + timedelta(days=3)) == 0


@pytest.mark.asyncio
async def test_epic_reward_grants_gold_and_item(db_session, user, make_item):
    """Test an epic roll pays gold and an epic item."""
    await make_item("Dragon Scale", rarity="epic")
    service = MinigameService(db_session, rng=ScriptedRandom([100, 700]))

    result = await service.play(user, today=date(2026, 3, 10))

    assert result["reward_type"] == "epic"
    assert result["reward_item"]["name"] == "Dragon Scale"
    assert user.gold == 1700
    assert await InventoryService(db_session).count_item(user, "Dragon Scale") == 1
    history = await service.get_rewards_history(user)
    assert history[0]["reward_item"] == "Dragon Scale"


@pytest.mark.asyncio
async def test_archery_is_limited_to_once_a_day(db_session, user):
    """Test archery scores are daily limited while other games are not."""
    service = MinigameService(db_session)
    assert (await service.submit_score(user, "archery", 40))["message"] == "Score of 40 recorded!"
    assert (await service.submit_score(user, "archery", 50))["message"] == (
        "You have already played this minigame today. Come back tomorrow!"
    )
    assert (await service.submit_score(user, "darts", 10))["success"]
    assert (await service.submit_score(user, "darts", -1))["message"] == "Invalid score."


@pytest.mark.asyncio
async def test_leaderboard_rewards_collected_where_earned(db_session, make_user, world):
    """Test yesterday's leaders get prizes, once, collectable at the scoring location."""
    service = MinigameService(db_session)
    first = await make_user()
    second = await make_user()
    await service.submit_score(first, "darts", 90)
    await service.submit_score(first, "darts", 30)
    await service.submit_score(second, "darts", 70)

    board = await service.get_leaderboard("darts")
    assert [(row["rank"], row["user_id"], row["best_score"]) for row in board] == [(1, first.id, 90), (2, second.id, 70)]

    tomorrow = utcnow().date() + timedelta(days=1)
    assert (await service.distribute_rewards("darts", today=tomorrow))["daily"] == 2
    assert (await service.distribute_rewards("darts", today=tomorrow))["daily"] == 0
    assert await service.get_pending_count(first) >= 1

    first.current_location_type = "town"
    first.current_location_id = world["town"].id
    assert (await service.collect_rewards(first))["message"] == "You have no rewards to collect at this location."

    second_gold = second.gold
    result = await service.collect_rewards(second)
    assert result["gold"] >= 500
    assert second.gold == second_gold + result["gold"]
    assert await service.get_pending_count(second) == 0
