"""
Tests for model helpers that carry game rules.
"""

from datetime import timedelta

import pytest

from realm.models.action_queue import ActionQueue
from realm.models.base import utcnow
from realm.models.combat import Monster
from realm.models.house import GardenPlot, PlayerHouse
from realm.models.item import Item
from realm.models.market import MarketPrice
from realm.models.tavern import MinigamePlay, MinigameReward
from realm.models.user import User
from realm.models.world import WorldState, resolve_location


def test_travel_and_infirmary_timers():
    """Test timers only count while their end is still ahead."""
    now = utcnow()
    user = User(username="walker", is_traveling=True, travel_arrives_at=now + timedelta(minutes=1))
    assert user.is_traveling_now(now)
    assert not user.is_traveling_now(now + timedelta(minutes=2))

    user.hp, user.max_hp = 0, 10
    user.is_in_infirmary = False
    user.admit_to_infirmary(10, now=now)
    assert user.is_in_infirmary_now(now)
    assert not user.check_and_discharge(now)
    assert user.check_and_discharge(now + timedelta(minutes=10))
    assert user.hp == 10
    assert user.infirmary_heals_at is None


def test_item_perishability():
    """Test decay and spoilage flags."""
    assert Item(name="Berries", decay_rate_per_week=4, spoil_after_weeks=None).is_perishable()
    assert Item(name="Raw Meat", decay_rate_per_week=0, spoil_after_weeks=2).spoils_after_time()
    assert not Item(name="Stone", decay_rate_per_week=0, spoil_after_weeks=None).is_perishable()
    assert Item(name="Sword", equipment_slot="weapon").is_equippable()


def test_market_price_sell_ratio():
    """Test buy is the current price and sell is eighty percent rounded down."""
    price = MarketPrice(current_price=11)
    assert price.buy_price == 11
    assert price.sell_price == 8
    assert MarketPrice(current_price=1).sell_price == 1


def test_house_condition_thresholds():
    """Test repair cost and the buff and storage cut-offs."""
    house = PlayerHouse(tier="cottage", condition=60)
    assert house.repair_cost() == 2000
    assert not house.are_buffs_disabled()
    house.condition = 50
    assert house.are_buffs_disabled()
    assert not house.is_storage_disabled()
    house.condition = 25
    assert house.is_storage_disabled()
    assert PlayerHouse(tier="palace", condition=100).upkeep_cost() == 100
    assert house.is_upkeep_overdue() is False


def test_minigame_streak_odds_and_reward_collection():
    """Test streak odds cap at day five and rewards collect once."""
    assert MinigamePlay.reward_chances(9) == MinigamePlay.reward_chances(5)
    assert sum(MinigamePlay.reward_chances(3).values()) == 100
    reward = MinigameReward()
    assert reward.collect()
    assert not reward.collect()


def test_action_queue_states():
    """Test a queue with no total repeats until stopped."""
    queue = ActionQueue(status=ActionQueue.STATUS_ACTIVE, total=0)
    assert queue.is_active()
    assert queue.is_infinite()
    queue.mark(ActionQueue.STATUS_CANCELLED, "Stopped.")
    assert not queue.is_active()
    assert queue.stop_reason == "Stopped."


def test_monster_defense_depends_on_attack_style():
    """Test each attack style reads its own defense and unset styles use the defense level."""
    monster = Monster(defense_level=12, stab_defense=30, slash_defense=0, crush_defense=None)
    assert monster.defense_against("stab") == 30
    assert monster.defense_against("slash") == 0
    assert monster.defense_against("crush") == 12
    assert monster.defense_against("magic") == 12


def test_garden_plot_ripens_then_withers():
    """Test a growing plot turns ready at ready_at and withered at withers_at."""
    now = utcnow()
    plot = GardenPlot(
        status=GardenPlot.STATUS_GROWING,
        planted_at=now - timedelta(minutes=30),
        ready_at=now + timedelta(minutes=30),
        withers_at=now + timedelta(hours=24),
    )
    assert plot.refresh_status(now) == GardenPlot.STATUS_GROWING
    assert plot.growth_progress(now) == 50
    assert plot.refresh_status(now + timedelta(hours=1)) == GardenPlot.STATUS_READY
    assert plot.growth_progress(now) == 100
    assert plot.refresh_status(now + timedelta(days=2)) == GardenPlot.STATUS_WITHERED
    plot.clear()
    assert plot.status == GardenPlot.STATUS_EMPTY
    assert plot.quality == 60


@pytest.mark.asyncio
async def test_world_state_is_created_once(db_session):
    """Test the calendar row starts at year 1 spring and is reused."""
    state = await WorldState.current(db_session)
    assert (state.current_year, state.current_season, state.current_week, state.current_day) == (1, "spring", 1, 1)
    assert await WorldState.current(db_session) is state
    state.current_season = "autumn"
    state.current_week = 3
    assert state.week_of_year() == 27


@pytest.mark.asyncio
async def test_resolve_location(db_session, world):
    """Test location lookups by type, with castle as a barony."""
    assert (await resolve_location(db_session, "village", world["village"].id)).name == "Millbrook"
    assert (await resolve_location(db_session, "castle", world["barony"].id)).name == "Ashford"
    assert await resolve_location(db_session, "dungeon", 1) is None
    assert await resolve_location(db_session, "town", None) is None
