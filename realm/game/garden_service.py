"""
House gardens: herbs grown in planters inside a Garden room.

Garden crops take half again as long as field crops and wither a day after
they ripen. Quality starts at 60 (75 on a composted plot) and rises with
watering, tending and compost; a harvest of quality 80 or more yields an
extra herb and half again the Farming XP. Herblore gets half the Farming XP.
"""

import math
import random
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import GameLogicError
from ..models.base import utcnow
from ..models.house import GardenPlot, HouseFurniture, HouseRoom, PlayerHouse
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .construction_tables import (
    COMPOST_BONES,
    COMPOST_CHARGES_PER_BATCH,
    COMPOST_QUALITY_BONUS,
    GARDEN_BASE_QUALITY,
    GARDEN_COMPOSTED_QUALITY,
    GARDEN_CROPS,
    GARDEN_GROWTH_MULTIPLIER,
    GARDEN_PLOTS,
    GARDEN_TEND_ENERGY,
    GARDEN_WITHER_HOURS,
    MAX_COMPOST_CHARGES,
    get_furniture_config,
)
from .energy_service import EnergyService
from .inventory_service import InventoryService
from .skill_service import SkillService

logger = get_logger(__name__)

HIGH_QUALITY = 80
PLOT_NOT_FOUND = "Garden plot not found."


def plot_to_dict(slot: str, plot: GardenPlot | None, has_planter: bool, now: datetime | None = None) -> dict[str, Any]:
    crop = GARDEN_CROPS.get(plot.crop) if plot is not None and plot.crop else None
    return {
        "plot_slot": slot,
        "has_furniture": has_planter,
        "status": plot.status if plot is not None else GardenPlot.STATUS_EMPTY,
        "crop_name": crop["name"] if crop else None,
        "growth_progress": plot.growth_progress(now) if plot is not None else 0,
        "ready_at": plot.ready_at.isoformat() if plot is not None and plot.ready_at else None,
        "quality": plot.quality if plot is not None else GARDEN_BASE_QUALITY,
        "is_watered": plot.is_watered if plot is not None else False,
        "is_composted": plot.is_composted if plot is not None else False,
        "times_tended": plot.times_tended if plot is not None else 0,
    }


class GardenService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()
        self._inventory = InventoryService(session)
        self._skills = SkillService(session)
        self._energy = EnergyService(session)

    async def _get_house(self, user: User) -> PlayerHouse | None:
        stmt = select(PlayerHouse).where(PlayerHouse.player_id == user.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _get_garden_room(self, house: PlayerHouse) -> HouseRoom | None:
        stmt = select(HouseRoom).where(HouseRoom.player_house_id == house.id, HouseRoom.room_type == "garden").limit(1)
        return (await self._session.execute(stmt)).scalars().first()

    async def _furniture_at(self, room: HouseRoom, hotspot: str) -> HouseFurniture | None:
        stmt = select(HouseFurniture).where(
            HouseFurniture.house_room_id == room.id, HouseFurniture.hotspot_slug == hotspot
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _get_plot(self, user: User, plot_slot: str) -> GardenPlot | None:
        house = await self._get_house(user)
        if house is None:
            return None
        stmt = select(GardenPlot).where(GardenPlot.player_house_id == house.id, GardenPlot.plot_slot == plot_slot)
        plot = (await self._session.execute(stmt)).scalar_one_or_none()
        if plot is not None:
            plot.refresh_status()
        return plot

    async def _load_garden(self, user: User) -> tuple[PlayerHouse | None, HouseRoom | None, str | None]:
        house = await self._get_house(user)
        if house is None:
            return None, None, "You do not own a house."
        room = await self._get_garden_room(house)
        if room is None:
            return house, None, "You do not have a garden room."
        return house, room, None

    async def has_auto_water(self, room: HouseRoom) -> bool:
        return bool(await self.garden_effect(room, "irrigation", "auto_water"))

    async def garden_effect(self, room: HouseRoom, hotspot: str, effect: str) -> int:
        furniture = await self._furniture_at(room, hotspot)
        if furniture is None:
            return 0
        config = get_furniture_config("garden", hotspot, furniture.furniture_key) or {}
        return config.get("effect", {}).get(effect, 0)

    async def plant(self, user: User, plot_slot: str, crop_slug: str = "herbs") -> dict[str, Any]:
        house, room, error = await self._load_garden(user)
        if error:
            return {"success": False, "message": error}
        if plot_slot not in GARDEN_PLOTS:
            return {"success": False, "message": "Invalid plot slot."}
        if await self._furniture_at(room, plot_slot) is None:
            return {"success": False, "message": "Build a planter at this slot first."}
        crop = GARDEN_CROPS.get(crop_slug)
        if crop is None:
            return {"success": False, "message": "Only herbs can be grown in the garden."}
        if await self._skills.get_level(user, "farming") < crop["farming_level"]:
            return {"success": False, "message": f"You need Farming level {crop['farming_level']} to plant this."}
        if not await self._inventory.has_item(user, crop["seed"]):
            return {"success": False, "message": "You do not have the required seeds."}

        stmt = select(GardenPlot).where(GardenPlot.player_house_id == house.id, GardenPlot.plot_slot == plot_slot)
        plot = (await self._session.execute(stmt)).scalar_one_or_none()
        if plot is None:
            plot = GardenPlot(
                player_house_id=house.id,
                plot_slot=plot_slot,
                status=GardenPlot.STATUS_EMPTY,
                quality=GARDEN_BASE_QUALITY,
                times_tended=0,
                is_watered=False,
                is_composted=False,
            )
            self._session.add(plot)
        elif plot.status != GardenPlot.STATUS_EMPTY:
            return {"success": False, "message": "This plot is not empty."}

        await self._inventory.remove_item(user, crop["seed"])
        auto_water = await self.has_auto_water(room)
        now = utcnow()
        ready_at = now + timedelta(minutes=math.ceil(crop["grow_minutes"] * GARDEN_GROWTH_MULTIPLIER))
        plot.crop = crop_slug
        plot.status = GardenPlot.STATUS_GROWING if auto_water else GardenPlot.STATUS_PLANTED
        plot.planted_at = now
        plot.ready_at = ready_at
        plot.withers_at = ready_at + timedelta(hours=GARDEN_WITHER_HOURS)
        plot.quality = GARDEN_COMPOSTED_QUALITY if plot.is_composted else GARDEN_BASE_QUALITY
        plot.times_tended = 0
        plot.is_watered = auto_water
        plot.last_watered_at = now if auto_water else None
        await self._session.flush()

        logger.info("Garden planted", user_id=user.id, plot=plot_slot, crop=crop_slug, auto_water=auto_water)
        message = f"Planted {crop['name']} in your garden."
        if auto_water:
            message += " Auto-watered!"
        return {"success": True, "message": message}

    async def water(self, user: User, plot_slot: str) -> dict[str, Any]:
        plot = await self._get_plot(user, plot_slot)
        if plot is None:
            return {"success": False, "message": PLOT_NOT_FOUND}
        if not plot.is_active or plot.is_watered:
            return {"success": False, "message": "Cannot water this plot right now."}

        plot.is_watered = True
        plot.last_watered_at = utcnow()
        plot.quality = min(100, plot.quality + self._rng.randint(5, 10))
        plot.status = GardenPlot.STATUS_GROWING
        await self._session.flush()
        return {"success": True, "message": "Plot watered! Quality improved.", "quality": plot.quality}

    async def tend(self, user: User, plot_slot: str) -> dict[str, Any]:
        plot = await self._get_plot(user, plot_slot)
        if plot is None:
            return {"success": False, "message": PLOT_NOT_FOUND}
        if not plot.is_active:
            return {"success": False, "message": "Nothing to tend in this plot."}
        if not await self._energy.consume_energy(user, GARDEN_TEND_ENERGY):
            return {"success": False, "message": f"Not enough energy (need {GARDEN_TEND_ENERGY})."}

        plot.times_tended += 1
        plot.quality = min(100, plot.quality + self._rng.randint(10, 20))
        await self._session.flush()
        return {"success": True, "message": "Tended your garden plot. Quality improved!", "quality": plot.quality}

    def roll_yield(self, crop: dict[str, Any], quality: int) -> int:
        amount = self._rng.randint(crop["yield_min"], crop["yield_max"])
        return amount + 1 if quality >= HIGH_QUALITY else amount

    async def harvest(self, user: User, plot_slot: str) -> dict[str, Any]:
        plot = await self._get_plot(user, plot_slot)
        if plot is None:
            return {"success": False, "message": PLOT_NOT_FOUND}
        if plot.status == GardenPlot.STATUS_WITHERED:
            plot.clear()
            await self._session.flush()
            # Reported as a success so the clear is not rolled back
            return {"success": True, "message": "The crop has withered. Plot cleared.", "yield": 0, "withered": True}
        if plot.status != GardenPlot.STATUS_READY:
            return {"success": False, "message": "This crop is not ready to harvest."}

        crop = GARDEN_CROPS.get(plot.crop or "")
        if crop is None:
            raise GameLogicError(
                f"Garden plot {plot.id} is ready but holds no known crop",
                game_action="garden_harvest",
                details={"crop": plot.crop},
            )
        amount = self.roll_yield(crop, plot.quality)
        herb = await self._inventory.resolve_item(crop["harvest"])
        if herb is None or amount > await self._inventory.space_for_item(user, herb):
            return {"success": False, "message": "Not enough inventory space."}

        xp = crop["farming_xp"]
        if plot.quality >= HIGH_QUALITY:
            xp = int(xp * 1.5)
        herblore_xp = int(xp * 0.5)
        await self._inventory.add_item(user, herb, amount)
        _, farming_levels = await self._skills.add_xp(user, "farming", xp)
        herblore_levels = 0
        if herblore_xp > 0:
            _, herblore_levels = await self._skills.add_xp(user, "herblore", herblore_xp)
        plot.clear()
        await self._session.flush()

        logger.info("Garden harvested", user_id=user.id, plot=plot_slot, amount=amount, xp=xp)
        message = f"Harvested {amount}x {herb.name}! +{xp} Farming XP, +{herblore_xp} Herblore XP."
        if farming_levels:
            message += " Farming level up!"
        if herblore_levels:
            message += " Herblore level up!"
        return {
            "success": True,
            "message": message,
            "yield": amount,
            "item_name": herb.name,
            "farming_xp": xp,
            "herblore_xp": herblore_xp,
            "farming_level_up": farming_levels > 0,
            "herblore_level_up": herblore_levels > 0,
        }

    async def clear_plot(self, user: User, plot_slot: str) -> dict[str, Any]:
        plot = await self._get_plot(user, plot_slot)
        if plot is None:
            return {"success": False, "message": PLOT_NOT_FOUND}
        plot.clear()
        await self._session.flush()
        return {"success": True, "message": "Plot cleared."}

    async def add_compost(self, user: User) -> dict[str, Any]:
        """Turn bones into compost charges in the garden's compost bin."""
        house, room, error = await self._load_garden(user)
        if error:
            return {"success": False, "message": error}
        if await self._furniture_at(room, "compost_bin") is None:
            return {"success": False, "message": "Build a compost bin first."}
        if house.compost_charges >= MAX_COMPOST_CHARGES:
            return {"success": False, "message": f"Compost bin is full (max {MAX_COMPOST_CHARGES} charges)."}
        if not await self._inventory.has_item(user, "Bones", COMPOST_BONES):
            return {"success": False, "message": f"You need {COMPOST_BONES} Bones to make compost."}

        await self._inventory.remove_item(user, "Bones", COMPOST_BONES)
        house.compost_charges = min(MAX_COMPOST_CHARGES, house.compost_charges + COMPOST_CHARGES_PER_BATCH)
        await self._session.flush()
        return {
            "success": True,
            "message": f"Added compost! Now have {house.compost_charges}/{MAX_COMPOST_CHARGES} charges.",
            "compost_charges": house.compost_charges,
        }

    async def use_compost(self, user: User, plot_slot: str) -> dict[str, Any]:
        house = await self._get_house(user)
        if house is None or house.compost_charges <= 0:
            return {"success": False, "message": "No compost charges available."}
        plot = await self._get_plot(user, plot_slot)
        if plot is None:
            return {"success": False, "message": PLOT_NOT_FOUND}
        if plot.is_composted:
            return {"success": False, "message": "This plot is already composted."}
        if plot.status not in (GardenPlot.STATUS_EMPTY, GardenPlot.STATUS_PLANTED, GardenPlot.STATUS_GROWING):
            return {"success": False, "message": "Cannot compost this plot right now."}

        house.compost_charges -= 1
        plot.is_composted = True
        plot.quality = min(100, plot.quality + COMPOST_QUALITY_BONUS)
        await self._session.flush()
        return {"success": True, "message": f"Compost applied! Quality boosted by {COMPOST_QUALITY_BONUS}."}

    async def get_garden(self, user: User) -> dict[str, Any] | None:
        house, room, error = await self._load_garden(user)
        if error:
            return None
        stmt = select(GardenPlot).where(GardenPlot.player_house_id == house.id)
        plots = {plot.plot_slot: plot for plot in (await self._session.execute(stmt)).scalars()}
        now = utcnow()
        plot_data = {}
        for slot in GARDEN_PLOTS:
            plot = plots.get(slot)
            if plot is not None:
                plot.refresh_status(now)
            plot_data[slot] = plot_to_dict(slot, plot, await self._furniture_at(room, slot) is not None, now)
        await self._session.flush()

        bonuses: dict[str, int] = {}
        for hotspot in ("irrigation", "lighting"):
            furniture = await self._furniture_at(room, hotspot)
            config = get_furniture_config("garden", hotspot, furniture.furniture_key) if furniture else None
            for key, value in (config or {}).get("effect", {}).items():
                bonuses[key] = bonuses.get(key, 0) + value

        seeds = []
        for slug, crop in GARDEN_CROPS.items():
            if await self._inventory.has_item(user, crop["seed"]):
                seeds.append(
                    {
                        "crop": slug,
                        "name": crop["seed"],
                        "crop_name": crop["name"],
                        "farming_level": crop["farming_level"],
                    }
                )
        return {
            "plots": plot_data,
            "available_seeds": seeds,
            "compost_charges": house.compost_charges,
            "max_compost": MAX_COMPOST_CHARGES,
            "auto_water": bool(bonuses.get("auto_water")),
            "total_bonuses": bonuses,
        }
