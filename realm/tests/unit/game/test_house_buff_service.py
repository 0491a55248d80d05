"""
Unit tests for house buffs.
"""

import pytest

from realm.game.house_buff_service import HouseBuffService
from realm.models.house import HouseFurniture, HouseRoom, PlayerHouse


@pytest.fixture
def furnished_house(db_session, user):
    """A cottage with a bedroom (straw bed) next to a hearth room."""

    async def _make(condition=100):
        house = PlayerHouse(player=user, player_id=user.id, tier="cottage", condition=condition)
        db_session.add(house)
        await db_session.flush()
        bedroom = HouseRoom(player_house_id=house.id, room_type="bedroom", grid_x=0, grid_y=0)
        hearth = HouseRoom(player_house_id=house.id, room_type="hearth_room", grid_x=1, grid_y=0)
        db_session.add_all([bedroom, hearth])
        await db_session.flush()
        db_session.add(HouseFurniture(house_room_id=bedroom.id, hotspot_slug="bed", furniture_key="straw_bed"))
        await db_session.flush()
        return house

    return _make


@pytest.mark.asyncio
async def test_effects_sum_furniture_and_adjacency(db_session, user, furnished_house):
    """Test furniture effects and room adjacency bonuses add up."""
    await furnished_house()
    service = HouseBuffService(db_session)

    assert await service.get_house_effects(user) == {"energy_regen_bonus": 10}

    sources = await service.get_house_buff_sources(user)
    assert [s["source"] for s in sources] == [
        "Bedroom - Straw Bed",
        "Adjacency: Bedroom + Hearth Room: +5% Energy Regen",
    ]


@pytest.mark.asyncio
async def test_run_down_house_grants_nothing(db_session, user, furnished_house):
    """Test buffs switch off at condition 50."""
    await furnished_house(condition=50)
    service = HouseBuffService(db_session)
    assert await service.get_house_effects(user) == {}
    assert await service.get_house_buff_sources(user) == []


@pytest.mark.asyncio
async def test_no_house_and_cache(db_session, user, furnished_house):
    """Test effects are cached per player until cleared."""
    service = HouseBuffService(db_session)
    assert await service.get_house_effects(user) == {}

    await furnished_house()
    assert await service.get_house_effects(user) == {}
    service.clear_cache()
    assert await service.get_house_effects(user) == {"energy_regen_bonus": 10}


def test_adjacency_counts_each_bonus_once():
    """Test two qualifying pairs of the same rooms only count once."""
    rooms = [
        HouseRoom(room_type="kitchen", grid_x=1, grid_y=1),
        HouseRoom(room_type="dining_room", grid_x=0, grid_y=1),
        HouseRoom(room_type="dining_room", grid_x=2, grid_y=1),
    ]
    pairs = HouseBuffService.active_adjacency_pairs(rooms)
    assert [p["effect_key"] for p in pairs] == ["cooking_xp_bonus"]
