"""
Unit tests for the world calendar.
"""

from datetime import timedelta

import pytest

from realm.game.calendar_service import CalendarService, format_date
from realm.models.base import utcnow


@pytest.mark.asyncio
async def test_advance_week_rolls_season_and_year(db_session, world):
    """Test week twelve of winter rolls over into spring of the next year."""
    service = CalendarService(db_session, run_simulation=False)
    await service.set_date(1, "winter", 12, day=5)

    summary = await service.advance_week()

    state = world["state"]
    assert summary["year_advanced"]
    assert (state.current_year, state.current_season, state.current_week, state.current_day) == (2, "spring", 1, 1)
    assert summary["date"] == "Week 1 of Spring, Year 2"


@pytest.mark.asyncio
async def test_advance_day_rolls_into_next_week(db_session, world):
    """Test the eighth day starts a new week."""
    service = CalendarService(db_session, run_simulation=False)
    await service.set_date(3, "summer", 4, day=6)

    assert (await service.advance_day())["week_advanced"] is False
    summary = await service.advance_day()

    assert summary["week_advanced"]
    assert format_date(world["state"]) == "Week 5 of Summer, Year 3"


@pytest.mark.asyncio
async def test_set_date_validation(db_session, world):
    """Test out of range dates are rejected."""
    service = CalendarService(db_session)
    with pytest.raises(ValueError, match="Invalid season"):
        await service.set_date(1, "monsoon", 1)
    with pytest.raises(ValueError, match="Week must be between 1 and 12"):
        await service.set_date(1, "spring", 13)
    with pytest.raises(ValueError, match="Year must be at least 1"):
        await service.set_date(0, "spring", 1)


@pytest.mark.asyncio
async def test_process_tick_honours_interval(db_session, world):
    """Test ticks are skipped until the interval has elapsed unless forced."""
    service = CalendarService(db_session, run_simulation=False, tick_interval_seconds=3600)
    state = world["state"]
    state.last_tick_at = utcnow() - timedelta(minutes=10)

    assert await service.process_tick() is None
    assert (await service.process_tick(force=True))["week_advanced"]

    state.last_tick_at = utcnow() - timedelta(hours=2)
    assert await service.should_tick()


@pytest.mark.asyncio
async def test_weekly_rollover_runs_simulation(db_session, world, rng):
    """Test a simulated week reports every weekly job."""
    summary = await CalendarService(db_session, rng=rng).advance_week()

    for key in (
        "food_consumption",
        "resource_decay",
        "house_upkeep",
        "servant_wages",
        "salaries_paid",
        "petitions_expired",
        "market_prices_refreshed",
    ):
        assert key in summary
    assert summary["food_consumption"]["villages_processed"] == 1
    assert "npc_aging" not in summary


@pytest.mark.asyncio
async def test_calendar_data_modifiers(db_session, world):
    """Test the calendar view carries the seasonal modifiers."""
    service = CalendarService(db_session)
    await service.set_date(4, "winter", 2)

    data = await service.get_calendar_data()

    assert data["week_of_year"] == 38
    assert data["travel_modifier"] == 1.3
    assert await service.get_gathering_modifier() == 0.5
