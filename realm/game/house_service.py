"""
Player housing: purchase, rooms and furniture, storage, upkeep and repair.

Houses cost upkeep every week. Paying pushes the due date a week out; an
overdue house loses 10 condition per weekly pass and is abandoned at 0.
"""

from datetime import timedelta
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.house import HouseFurniture, HouseRoom, HouseServant, HouseStorage, PlayerHouse, ServantTask
from ..models.item import Item
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .construction_tables import (
    HOUSE_TIER_ORDER,
    HOUSE_TIERS,
    ROOMS,
    UPKEEP_DEGRADATION,
    UPKEEP_PERIOD_DAYS,
    get_furniture_config,
)
from .inventory_service import InventoryService
from .skill_service import SkillService

logger = get_logger(__name__)

STORAGE_DISABLED_MESSAGE = "House storage is disabled due to poor condition. Repair your house first."


def house_to_dict(house: PlayerHouse) -> dict[str, Any]:
    return {
        "id": house.id,
        "name": house.name,
        "tier": house.tier,
        "tier_name": house.tier_config["name"],
        "condition": house.condition,
        "upkeep_cost": house.upkeep_cost(),
        "upkeep_due_at": house.upkeep_due_at.isoformat() if house.upkeep_due_at else None,
        "repair_cost": house.repair_cost(),
        "grid_size": house.grid_size(),
        "max_rooms": house.max_rooms(),
        "storage_capacity": house.storage_capacity(),
        "buffs_disabled": house.are_buffs_disabled(),
        "storage_disabled": house.is_storage_disabled(),
        "location_type": house.location_type,
        "location_id": house.location_id,
    }


class HouseService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._inventory = InventoryService(session)
        self._skills = SkillService(session)

    async def get_house(self, user: User) -> PlayerHouse | None:
        stmt = select(PlayerHouse).where(PlayerHouse.player_id == user.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_rooms(self, house: PlayerHouse) -> list[HouseRoom]:
        stmt = select(HouseRoom).where(HouseRoom.player_house_id == house.id).order_by(HouseRoom.id)
        return list((await self._session.execute(stmt)).scalars())

    async def get_room_furniture(self, room: HouseRoom) -> list[HouseFurniture]:
        stmt = select(HouseFurniture).where(HouseFurniture.house_room_id == room.id).order_by(HouseFurniture.id)
        return list((await self._session.execute(stmt)).scalars())

    async def get_storage(self, house: PlayerHouse) -> list[HouseStorage]:
        stmt = select(HouseStorage).where(HouseStorage.player_house_id == house.id).order_by(HouseStorage.slot_number)
        return list((await self._session.execute(stmt)).scalars())

    async def get_house_info(self, user: User) -> dict[str, Any] | None:
        house = await self.get_house(user)
        if house is None:
            return None
        info = house_to_dict(house)
        rooms = []
        for room in await self.get_rooms(house):
            rooms.append(
                {
                    "id": room.id,
                    "room_type": room.room_type,
                    "name": ROOMS.get(room.room_type, {}).get("name", room.room_type),
                    "grid_x": room.grid_x,
                    "grid_y": room.grid_y,
                    "furniture": [
                        {"hotspot": f.hotspot_slug, "furniture_key": f.furniture_key}
                        for f in await self.get_room_furniture(room)
                    ],
                }
            )
        info["rooms"] = rooms
        info["storage"] = [
            {"item": s.item.name, "quantity": s.quantity, "slot": s.slot_number} for s in await self.get_storage(house)
        ]
        return info

    def can_purchase_house(self, user: User, owns_house: bool) -> tuple[bool, str | None]:
        if owns_house:
            return False, "You already own a house."
        tier = HOUSE_TIERS["cottage"]
        if user.title_tier < tier["title_level"]:
            return False, "You need a higher title to purchase a house. Earn at least a Freeman title."
        if user.gold < tier["cost"]:
            return False, f"Not enough gold. You need {tier['cost']:,} gold."
        if not user.current_location_type or not user.current_location_id:
            return False, "You must be at a location to purchase a house."
        return True, None

    async def purchase_house(self, user: User) -> dict[str, Any]:
        ok, reason = self.can_purchase_house(user, await self.get_house(user) is not None)
        if not ok:
            return {"success": False, "message": reason}

        tier = HOUSE_TIERS["cottage"]
        user.gold -= tier["cost"]
        house = PlayerHouse(
            player=user,
            player_id=user.id,
            name="My House",
            tier="cottage",
            condition=100,
            upkeep_due_at=utcnow() + timedelta(days=UPKEEP_PERIOD_DAYS),
            location_type=user.current_location_type,
            location_id=user.current_location_id,
        )
        self._session.add(house)
        await self._session.flush()
        logger.info("House purchased", user_id=user.id, house_id=house.id, cost=tier["cost"])
        return {"success": True, "message": f"You purchased a cottage for {tier['cost']:,} gold!", "house": house}

    async def build_room(self, user: User, room_type: str, grid_x: int, grid_y: int) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        room_config = ROOMS.get(room_type)
        if room_config is None:
            return {"success": False, "message": "Unknown room type."}
        if await self._skills.get_level(user, "construction") < room_config["level"]:
            return {
                "success": False,
                "message": f"You need Construction level {room_config['level']} to build a {room_config['name']}.",
            }
        size = house.grid_size()
        if not (0 <= grid_x < size and 0 <= grid_y < size):
            return {"success": False, "message": "Invalid grid position."}

        rooms = await self.get_rooms(house)
        if any(room.grid_x == grid_x and room.grid_y == grid_y for room in rooms):
            return {"success": False, "message": "A room already exists at this position."}
        if len(rooms) >= house.max_rooms():
            return {"success": False, "message": "Maximum rooms reached for your house tier."}
        if user.gold < room_config["cost"]:
            return {"success": False, "message": f"Not enough gold. You need {room_config['cost']:,} gold."}

        user.gold -= room_config["cost"]
        room = HouseRoom(player_house_id=house.id, room_type=room_type, grid_x=grid_x, grid_y=grid_y)
        self._session.add(room)
        await self._session.flush()
        logger.info("House room built", user_id=user.id, room_type=room_type, grid_x=grid_x, grid_y=grid_y)
        return {
            "success": True,
            "message": f"Built a {room_config['name']} for {room_config['cost']:,} gold!",
            "room": room,
        }

    async def _get_own_room(self, house: PlayerHouse, room_id: int) -> HouseRoom | None:
        stmt = select(HouseRoom).where(HouseRoom.id == room_id, HouseRoom.player_house_id == house.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def build_furniture(self, user: User, room_id: int, hotspot: str, furniture_key: str) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        room = await self._get_own_room(house, room_id)
        if room is None:
            return {"success": False, "message": "Room not found."}
        room_config = ROOMS.get(room.room_type)
        if room_config is None:
            return {"success": False, "message": "Invalid room type."}
        if hotspot not in room_config["hotspots"]:
            return {"success": False, "message": "Invalid hotspot."}
        config = get_furniture_config(room.room_type, hotspot, furniture_key)
        if config is None:
            return {"success": False, "message": "Invalid furniture option."}
        if await self._skills.get_level(user, "construction") < config["level"]:
            return {"success": False, "message": f"You need Construction level {config['level']} to build {config['name']}."}

        for material, qty in config["materials"].items():
            have = await self._inventory.count_item(user, material, exclude_equipped=True)
            if have < qty:
                return {"success": False, "message": f"Not enough {material}. Need {qty}, have {have}."}

        existing = (
            await self._session.execute(
                select(HouseFurniture).where(
                    HouseFurniture.house_room_id == room.id, HouseFurniture.hotspot_slug == hotspot
                )
            )
        ).scalar_one_or_none()
        if existing is not None:
            await self._session.delete(existing)
            await self._session.flush()

        for material, qty in config["materials"].items():
            await self._inventory.remove_item(user, material, qty)
        self._session.add(HouseFurniture(house_room_id=room.id, hotspot_slug=hotspot, furniture_key=furniture_key))
        skill, levels_gained = await self._skills.add_xp(user, "construction", config["xp"])
        await self._session.flush()
        logger.info("Furniture built", user_id=user.id, room_id=room.id, furniture=furniture_key)
        return {
            "success": True,
            "message": f"Built {config['name']}!",
            "xp_awarded": config["xp"],
            "leveled_up": levels_gained > 0,
            "new_level": skill.level,
        }

    async def _refund_materials(self, user: User, config: dict[str, Any] | None) -> list[str]:
        """Give back half of each material, rounded down."""
        returned = []
        for material, qty in (config or {}).get("materials", {}).items():
            refund = qty // 2
            if refund > 0 and await self._inventory.resolve_item(material) is not None:
                await self._inventory.add_item(user, material, refund)
                returned.append(f"{refund} {material}")
        return returned

    async def demolish_furniture(self, user: User, room_id: int, hotspot: str) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        room = await self._get_own_room(house, room_id)
        if room is None:
            return {"success": False, "message": "Room not found."}
        stmt = select(HouseFurniture).where(HouseFurniture.house_room_id == room.id, HouseFurniture.hotspot_slug == hotspot)
        furniture = (await self._session.execute(stmt)).scalar_one_or_none()
        if furniture is None:
            return {"success": False, "message": "No furniture at this hotspot."}

        returned = await self._refund_materials(
            user, get_furniture_config(room.room_type, hotspot, furniture.furniture_key)
        )
        await self._session.delete(furniture)
        await self._session.flush()

        message = "Furniture demolished."
        if returned:
            message += f" Recovered: {', '.join(returned)}."
        return {"success": True, "message": message}

    async def demolish_room(self, user: User, room_id: int) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        room = await self._get_own_room(house, room_id)
        if room is None:
            return {"success": False, "message": "Room not found."}
        if room.room_type == "servant_quarters":
            servant = (
                await self._session.execute(select(HouseServant.id).where(HouseServant.player_house_id == house.id))
            ).first()
            if servant is not None:
                return {"success": False, "message": "Dismiss your servant before demolishing the Servant Quarters."}

        room_config = ROOMS.get(room.room_type)
        gold_returned = room_config["cost"] // 2 if room_config else 0
        returned = []
        for piece in await self.get_room_furniture(room):
            returned += await self._refund_materials(
                user, get_furniture_config(room.room_type, piece.hotspot_slug, piece.furniture_key)
            )
            await self._session.delete(piece)

        user.gold += gold_returned
        await self._session.delete(room)
        await self._session.flush()
        logger.info("House room demolished", user_id=user.id, room_type=room.room_type, gold_returned=gold_returned)

        message = f"Room demolished. {gold_returned:,} gold returned."
        if returned:
            message += f" Materials recovered: {', '.join(returned)}."
        return {"success": True, "message": message}

    async def can_upgrade_house(self, user: User, target_tier: str) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"can_upgrade": False, "reason": "You do not own a house."}
        target = HOUSE_TIERS.get(target_tier)
        if target is None:
            return {"can_upgrade": False, "reason": "Unknown house tier."}
        if HOUSE_TIER_ORDER.index(target_tier) != HOUSE_TIER_ORDER.index(house.tier) + 1:
            return {"can_upgrade": False, "reason": "You can only upgrade to the next tier."}
        if await self._skills.get_level(user, "construction") < target["level"]:
            return {
                "can_upgrade": False,
                "reason": f"You need Construction level {target['level']} to upgrade to a {target['name']}.",
            }
        if user.title_tier < target["title_level"]:
            return {"can_upgrade": False, "reason": "You need a higher title to upgrade your house."}
        cost = target["cost"] - HOUSE_TIERS[house.tier]["cost"]
        if user.gold < cost:
            return {"can_upgrade": False, "reason": f"Not enough gold. You need {cost:,} gold to upgrade."}
        return {"can_upgrade": True, "reason": None, "cost": cost, "house": house}

    async def upgrade_house(self, user: User, target_tier: str) -> dict[str, Any]:
        check = await self.can_upgrade_house(user, target_tier)
        if not check["can_upgrade"]:
            return {"success": False, "message": check["reason"]}

        user.gold -= check["cost"]
        check["house"].tier = target_tier
        await self._session.flush()
        logger.info("House upgraded", user_id=user.id, tier=target_tier)
        return {
            "success": True,
            "message": f"Your house has been upgraded to a {HOUSE_TIERS[target_tier]['name']}!",
            "tier": target_tier,
        }

    async def _get_storage_entry(self, house: PlayerHouse, item: Item) -> HouseStorage | None:
        stmt = select(HouseStorage).where(HouseStorage.player_house_id == house.id, HouseStorage.item_id == item.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def find_empty_storage_slot(self, house: PlayerHouse) -> int:
        stmt = select(HouseStorage.slot_number).where(HouseStorage.player_house_id == house.id)
        used = set((await self._session.execute(stmt)).scalars())
        for slot in range(house.storage_capacity()):
            if slot not in used:
                return slot
        return len(used)

    async def deposit_item(self, user: User, item_name: str, quantity: int) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        if house.is_storage_disabled():
            return {"success": False, "message": STORAGE_DISABLED_MESSAGE}
        if quantity < 1:
            return {"success": False, "message": "Invalid quantity."}
        item = await self._inventory.resolve_item(item_name)
        if item is None:
            return {"success": False, "message": "Item not found."}
        if not await self._inventory.has_item(user, item, quantity, exclude_equipped=True):
            return {"success": False, "message": f"You do not have enough {item_name}."}

        entry = await self._get_storage_entry(house, item)
        if entry is None:
            used = int(
                (
                    await self._session.execute(
                        select(func.count(HouseStorage.id)).where(HouseStorage.player_house_id == house.id)
                    )
                ).scalar_one()
            )
            capacity = house.storage_capacity()
            if used >= capacity:
                return {"success": False, "message": f"No storage slots available. You have used all {capacity} slots."}

        await self._inventory.remove_item(user, item, quantity)
        if entry is None:
            entry = HouseStorage(
                player_house_id=house.id,
                item_id=item.id,
                item=item,
                slot_number=await self.find_empty_storage_slot(house),
                quantity=quantity,
            )
            self._session.add(entry)
        else:
            entry.quantity += quantity
        await self._session.flush()
        return {"success": True, "message": f"Stored {quantity} {item_name}."}

    async def withdraw_item(self, user: User, item_name: str, quantity: int) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        if house.is_storage_disabled():
            return {"success": False, "message": STORAGE_DISABLED_MESSAGE}
        if quantity < 1:
            return {"success": False, "message": "Invalid quantity."}
        item = await self._inventory.resolve_item(item_name)
        if item is None:
            return {"success": False, "message": "Item not found."}
        entry = await self._get_storage_entry(house, item)
        if entry is None or entry.quantity < quantity:
            return {"success": False, "message": f"Not enough {item_name} in storage."}

        actual = min(quantity, await self._inventory.space_for_item(user, item))
        if actual <= 0:
            return {"success": False, "message": "Not enough inventory space."}

        await self._inventory.add_item(user, item, actual)
        entry.quantity -= actual
        if entry.quantity <= 0:
            await self._session.delete(entry)
        await self._session.flush()

        if actual < quantity:
            return {
                "success": True,
                "message": f"Withdrew {actual} {item_name} (inventory full, {quantity - actual} left in storage).",
            }
        return {"success": True, "message": f"Withdrew {actual} {item_name}."}

    async def pay_upkeep(self, user: User) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        cost = house.upkeep_cost()
        if user.gold < cost:
            return {"success": False, "message": f"Not enough gold. Upkeep costs {cost:,} gold."}

        user.gold -= cost
        house.upkeep_due_at = utcnow() + timedelta(days=UPKEEP_PERIOD_DAYS)
        await self._session.flush()
        logger.info("House upkeep paid", user_id=user.id, cost=cost)
        return {"success": True, "message": f"Upkeep paid! Next payment due in {UPKEEP_PERIOD_DAYS} days."}

    async def repair_house(self, user: User) -> dict[str, Any]:
        house = await self.get_house(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        if house.condition >= 100:
            return {"success": False, "message": "Your house is already in perfect condition."}
        cost = house.repair_cost()
        if user.gold < cost:
            return {"success": False, "message": f"Not enough gold. Repairs cost {cost:,} gold."}

        user.gold -= cost
        house.condition = 100
        await self._session.flush()
        logger.info("House repaired", user_id=user.id, cost=cost)
        return {"success": True, "message": f"House repaired to full condition for {cost:,} gold!"}

    async def _abandon(self, house: PlayerHouse) -> None:
        room_ids = select(HouseRoom.id).where(HouseRoom.player_house_id == house.id)
        servant_ids = select(HouseServant.id).where(HouseServant.player_house_id == house.id)
        await self._session.execute(delete(ServantTask).where(ServantTask.house_servant_id.in_(servant_ids)))
        await self._session.execute(delete(HouseServant).where(HouseServant.player_house_id == house.id))
        await self._session.execute(delete(HouseFurniture).where(HouseFurniture.house_room_id.in_(room_ids)))
        await self._session.execute(delete(HouseRoom).where(HouseRoom.player_house_id == house.id))
        await self._session.execute(delete(HouseStorage).where(HouseStorage.player_house_id == house.id))
        await self._session.delete(house)
        logger.info("House abandoned", house_id=house.id, player_id=house.player_id)

    async def process_upkeep_degradation(self) -> dict[str, int]:
        stmt = select(PlayerHouse).where(PlayerHouse.upkeep_due_at < utcnow(), PlayerHouse.condition > 0)
        houses = list((await self._session.execute(stmt)).scalars())
        degraded = abandoned = 0
        for house in houses:
            house.condition = max(0, house.condition - UPKEEP_DEGRADATION)
            degraded += 1
            if house.condition <= 0:
                await self._abandon(house)
                abandoned += 1
        await self._session.flush()
        logger.info("House upkeep degradation processed", processed=len(houses), degraded=degraded, abandoned=abandoned)
        return {"processed": len(houses), "degraded": degraded, "abandoned": abandoned}
