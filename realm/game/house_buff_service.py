"""
Bonuses a player's house grants: furniture effects plus room adjacency.

A house at condition 50 or below grants nothing.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.house import HouseFurniture, HouseRoom, PlayerHouse
from ..models.user import User
from .construction_tables import ADJACENCY_BONUSES, ROOMS, get_furniture_config


class HouseBuffService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._cache: dict[int, dict[str, int]] = {}

    async def _load(self, user: User) -> tuple[PlayerHouse | None, list[HouseRoom], list[HouseFurniture]]:
        house = (
            await self._session.execute(select(PlayerHouse).where(PlayerHouse.player_id == user.id))
        ).scalar_one_or_none()
        if house is None:
            return None, [], []
        rooms = list(
            (await self._session.execute(select(HouseRoom).where(HouseRoom.player_house_id == house.id))).scalars()
        )
        furniture = []
        if rooms:
            stmt = select(HouseFurniture).where(HouseFurniture.house_room_id.in_([room.id for room in rooms]))
            furniture = list((await self._session.execute(stmt)).scalars())
        return house, rooms, furniture

    @staticmethod
    def _furniture_sources(rooms: list[HouseRoom], furniture: list[HouseFurniture]) -> list[dict[str, Any]]:
        rooms_by_id = {room.id: room for room in rooms}
        sources = []
        for piece in sorted(furniture, key=lambda f: f.id):
            room = rooms_by_id[piece.house_room_id]
            config = get_furniture_config(room.room_type, piece.hotspot_slug, piece.furniture_key)
            if not config or "effect" not in config:
                continue
            for key, value in config["effect"].items():
                sources.append(
                    {
                        "source": f"{ROOMS[room.room_type]['name']} - {config['name']}",
                        "effect_key": key,
                        "value": value,
                    }
                )
        return sources

    @staticmethod
    def active_adjacency_pairs(rooms: list[HouseRoom]) -> list[dict[str, Any]]:
        """Each adjacency bonus counts once however many qualifying pairs exist."""
        grid = {(room.grid_x, room.grid_y): room.room_type for room in rooms}
        active = []
        for room_a, room_b, effect_key, value, description in ADJACENCY_BONUSES:
            for (x, y), room_type in grid.items():
                if room_type not in (room_a, room_b):
                    continue
                target = room_b if room_type == room_a else room_a
                neighbours = ((x - 1, y), (x + 1, y), (x, y - 1), (x, y + 1))
                if any(grid.get(pos) == target for pos in neighbours):
                    active.append({"effect_key": effect_key, "value": value, "description": description})
                    break
        return active

    async def get_house_effects(self, user: User) -> dict[str, int]:
        if user.id in self._cache:
            return self._cache[user.id]

        house, rooms, furniture = await self._load(user)
        effects: dict[str, int] = {}
        if house is not None and not house.are_buffs_disabled():
            for source in self._furniture_sources(rooms, furniture):
                effects[source["effect_key"]] = effects.get(source["effect_key"], 0) + source["value"]
            for pair in self.active_adjacency_pairs(rooms):
                effects[pair["effect_key"]] = effects.get(pair["effect_key"], 0) + pair["value"]

        self._cache[user.id] = effects
        return effects

    async def get_house_buff_sources(self, user: User) -> list[dict[str, Any]]:
        house, rooms, furniture = await self._load(user)
        if house is None or house.are_buffs_disabled():
            return []
        sources = self._furniture_sources(rooms, furniture)
        for pair in self.active_adjacency_pairs(rooms):
            sources.append(
                {"source": f"Adjacency: {pair['description']}", "effect_key": pair["effect_key"], "value": pair["value"]}
            )
        return sources

    def clear_cache(self) -> None:
        self._cache.clear()
