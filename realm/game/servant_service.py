"""
Household servants.

A house with Servant Quarters (and a bed in them) can keep one servant.
Servants work through a task queue one job at a time and draw a weekly
wage; an unpaid servant goes on strike and refuses work until paid.
"""

import math
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.house import HouseFurniture, HouseRoom, HouseServant, HouseStorage, PlayerHouse, ServantTask
from ..models.item import Item
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .construction_tables import PLANK_RECIPES, SERVANT_TIERS
from .house_buff_service import HouseBuffService
from .house_service import HouseService
from .inventory_service import InventoryService
from .skill_service import SkillService

logger = get_logger(__name__)

TASK_TYPES = ("sawmill_run", "fetch_materials", "serve_food")


class ServantService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._inventory = InventoryService(session)
        self._skills = SkillService(session)
        self._buffs = HouseBuffService(session)
        self._houses = HouseService(session)

    async def _get_house(self, user: User) -> PlayerHouse | None:
        stmt = select(PlayerHouse).where(PlayerHouse.player_id == user.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_servant(self, house: PlayerHouse) -> HouseServant | None:
        stmt = select(HouseServant).where(HouseServant.player_house_id == house.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _house_and_servant(self, user: User) -> tuple[PlayerHouse | None, HouseServant | None]:
        house = await self._get_house(user)
        if house is None:
            return None, None
        return house, await self.get_servant(house)

    async def _tasks(self, servant: HouseServant, *statuses: str) -> list[ServantTask]:
        stmt = (
            select(ServantTask)
            .where(ServantTask.house_servant_id == servant.id, ServantTask.status.in_(statuses))
            .order_by(ServantTask.id)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def current_task(self, servant: HouseServant) -> ServantTask | None:
        tasks = await self._tasks(servant, ServantTask.STATUS_IN_PROGRESS)
        return tasks[0] if tasks else None

    async def _storage_entry(self, house: PlayerHouse, item_name: str) -> HouseStorage | None:
        stmt = (
            select(HouseStorage)
            .join(Item, HouseStorage.item_id == Item.id)
            .where(HouseStorage.player_house_id == house.id, Item.name == item_name)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def hire_servant(self, user: User, tier: str) -> dict[str, Any]:
        config = SERVANT_TIERS.get(tier)
        if config is None:
            return {"success": False, "message": "Invalid servant tier."}
        house, servant = await self._house_and_servant(user)
        if house is None:
            return {"success": False, "message": "You do not own a house."}
        if servant is not None:
            return {"success": False, "message": "You already have a servant."}

        stmt = select(HouseRoom).where(HouseRoom.player_house_id == house.id, HouseRoom.room_type == "servant_quarters")
        quarters = (await self._session.execute(stmt)).scalars().first()
        if quarters is None:
            return {"success": False, "message": "You need a Servant Quarters room first."}
        stmt = select(HouseFurniture.id).where(
            HouseFurniture.house_room_id == quarters.id, HouseFurniture.hotspot_slug == "bed"
        )
        if (await self._session.execute(stmt)).first() is None:
            return {"success": False, "message": "Build a bed in your Servant Quarters first."}

        if await self._skills.get_level(user, "construction") < config["level"]:
            return {
                "success": False,
                "message": f"You need Construction level {config['level']} to hire a {config['name']}.",
            }
        if user.gold < config["hire_cost"]:
            return {"success": False, "message": f"Not enough gold. You need {config['hire_cost']}g."}

        user.gold -= config["hire_cost"]
        now = utcnow()
        self._session.add(
            HouseServant(
                house=house,
                player_house_id=house.id,
                servant_type=tier,
                name=config["name"],
                on_strike=False,
                hired_at=now,
                last_paid_at=now,
            )
        )
        await self._session.flush()
        logger.info("Servant hired", user_id=user.id, tier=tier)
        return {"success": True, "message": f"Hired a {config['name']} for {config['hire_cost']}g!"}

    async def dismiss_servant(self, user: User) -> dict[str, Any]:
        _, servant = await self._house_and_servant(user)
        if servant is None:
            return {"success": False, "message": "You do not have a servant."}
        name = servant.name
        await self._session.execute(delete(ServantTask).where(ServantTask.house_servant_id == servant.id))
        await self._session.delete(servant)
        await self._session.flush()
        logger.info("Servant dismissed", user_id=user.id)
        return {"success": True, "message": f"{name} has been dismissed."}

    async def assign_task(self, user: User, task_type: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        house, servant = await self._house_and_servant(user)
        if house is None or servant is None:
            return {"success": False, "message": "You do not have a servant."}
        if servant.on_strike:
            return {"success": False, "message": "Your servant is on strike! Pay their wages first."}

        params = params or {}
        if task_type == "sawmill_run":
            result = await self._assign_sawmill_run(user, house, params)
        elif task_type == "fetch_materials":
            result = await self._assign_fetch_materials(house, params)
        elif task_type == "serve_food":
            result = await self._assign_serve_food(house)
        else:
            return {"success": False, "message": "Invalid task type."}

        if "task_data" not in result:
            return result
        task = ServantTask(
            servant=servant,
            house_servant_id=servant.id,
            task_type=task_type,
            task_data=result.pop("task_data"),
            status=ServantTask.STATUS_QUEUED,
        )
        self._session.add(task)
        await self._session.flush()
        if await self.current_task(servant) is None:
            await self.start_next_task(servant)
        result["task_id"] = task.id
        return result

    async def _assign_sawmill_run(self, user: User, house: PlayerHouse, params: dict[str, Any]) -> dict[str, Any]:
        plank_name = params.get("plank_name", "")
        quantity = max(1, int(params.get("quantity", 1)))
        recipe = PLANK_RECIPES.get(plank_name)
        if recipe is None:
            return {"success": False, "message": "Invalid plank type."}
        logs = await self._storage_entry(house, recipe["log"])
        if logs is None or logs.quantity < quantity:
            return {"success": False, "message": f"Not enough {recipe['log']} in storage."}
        fee = recipe["fee"] * quantity
        if user.gold < fee:
            return {"success": False, "message": f"Not enough gold for sawmill fees ({fee}g)."}

        user.gold -= fee
        return {
            "success": True,
            "message": f"Queued sawmill run: {quantity}x {plank_name}.",
            "task_data": {"plank_name": plank_name, "quantity": quantity, "gold_paid": fee},
        }

    async def _assign_fetch_materials(self, house: PlayerHouse, params: dict[str, Any]) -> dict[str, Any]:
        item_name = params.get("item_name", "")
        quantity = max(1, int(params.get("quantity", 1)))
        if await self._inventory.resolve_item(item_name) is None:
            return {"success": False, "message": "Item not found."}
        entry = await self._storage_entry(house, item_name)
        if entry is None or entry.quantity < quantity:
            return {"success": False, "message": f"Not enough {item_name} in storage."}
        return {
            "success": True,
            "message": f"Queued fetch: {quantity}x {item_name}.",
            "task_data": {"item_name": item_name, "quantity": quantity},
        }

    async def _assign_serve_food(self, house: PlayerHouse) -> dict[str, Any]:
        stmt = (
            select(HouseStorage)
            .join(Item, HouseStorage.item_id == Item.id)
            .where(HouseStorage.player_house_id == house.id, Item.subtype == "food")
            .order_by(HouseStorage.slot_number)
        )
        food = (await self._session.execute(stmt)).scalars().first()
        if food is None:
            return {"success": False, "message": "No food items in storage."}
        return {
            "success": True,
            "message": f"Queued serve food: {food.item.name}.",
            "task_data": {"item_name": food.item.name, "food_value": food.item.food_value or 10},
        }

    async def task_duration_seconds(self, servant: HouseServant, task: ServantTask) -> int:
        config = servant.config
        if task.task_type == "sawmill_run":
            duration = math.ceil(task.task_data.get("quantity", 1) / config["carry_capacity"]) * config["base_speed"]
        else:
            duration = config["base_speed"]
        effects = await self._buffs.get_house_effects(servant.house.player)
        speed_bonus = effects.get("servant_speed_bonus", 0)
        if speed_bonus > 0:
            duration = int(max(1, duration * (1 - speed_bonus / 100)))
        return duration

    async def start_next_task(self, servant: HouseServant) -> ServantTask | None:
        if servant.on_strike:
            return None
        queued = await self._tasks(servant, ServantTask.STATUS_QUEUED)
        if not queued:
            return None
        task = queued[0]
        now = utcnow()
        task.status = ServantTask.STATUS_IN_PROGRESS
        task.started_at = now
        task.estimated_completion = now + timedelta(seconds=await self.task_duration_seconds(servant, task))
        await self._session.flush()
        return task

    async def complete_task(self, task: ServantTask) -> None:
        servant = task.servant
        if servant.on_strike:
            task.finish(ServantTask.STATUS_FAILED, "Servant is on strike.")
            await self._session.flush()
            return

        house = servant.house
        if task.task_type == "sawmill_run":
            await self._complete_sawmill_run(task, house)
        elif task.task_type == "fetch_materials":
            await self._complete_fetch_materials(task, house)
        elif task.task_type == "serve_food":
            await self._complete_serve_food(task, house)
        else:
            task.finish(ServantTask.STATUS_FAILED, "Unknown task type.")
        await self._session.flush()
        logger.debug("Servant task finished", task_id=task.id, status=task.status)
        await self.start_next_task(servant)

    async def _take_from_storage(self, entry: HouseStorage, quantity: int) -> None:
        if entry.quantity <= quantity:
            await self._session.delete(entry)
        else:
            entry.quantity -= quantity

    async def _complete_sawmill_run(self, task: ServantTask, house: PlayerHouse) -> None:
        plank_name = task.task_data["plank_name"]
        quantity = task.task_data["quantity"]
        recipe = PLANK_RECIPES.get(plank_name)
        if recipe is None:
            task.finish(ServantTask.STATUS_FAILED, "Invalid plank recipe.")
            return

        logs = await self._storage_entry(house, recipe["log"])
        if logs is not None:
            await self._take_from_storage(logs, quantity)

        plank = await self._inventory.resolve_item(plank_name)
        if plank is not None:
            planks = await self._storage_entry(house, plank_name)
            if planks is None:
                self._session.add(
                    HouseStorage(
                        player_house_id=house.id,
                        item_id=plank.id,
                        item=plank,
                        slot_number=await self._houses.find_empty_storage_slot(house),
                        quantity=quantity,
                    )
                )
            else:
                planks.quantity += quantity
        task.finish(
            ServantTask.STATUS_COMPLETED, f"Converted {quantity}x {recipe['log']} into {quantity}x {plank_name}."
        )

    async def _complete_fetch_materials(self, task: ServantTask, house: PlayerHouse) -> None:
        item_name = task.task_data["item_name"]
        quantity = task.task_data["quantity"]
        item = await self._inventory.resolve_item(item_name)
        if item is None:
            task.finish(ServantTask.STATUS_FAILED, "Item not found.")
            return
        entry = await self._storage_entry(house, item_name)
        if entry is None or entry.quantity < quantity:
            task.finish(ServantTask.STATUS_FAILED, "Not enough items in storage.")
            return

        await self._take_from_storage(entry, quantity)
        await self._inventory.add_item(house.player, item, quantity)
        task.finish(ServantTask.STATUS_COMPLETED, f"Fetched {quantity}x {item_name} to your inventory.")

    async def _complete_serve_food(self, task: ServantTask, house: PlayerHouse) -> None:
        item_name = task.task_data["item_name"]
        food_value = task.task_data.get("food_value", 10)
        entry = await self._storage_entry(house, item_name)
        if entry is None or entry.quantity < 1:
            task.finish(ServantTask.STATUS_FAILED, "No food left in storage.")
            return

        await self._take_from_storage(entry, 1)
        player = house.player
        gain = max(0, min(food_value, player.max_energy - player.energy))
        player.energy += gain
        task.finish(ServantTask.STATUS_COMPLETED, f"Served {item_name} (+{gain} energy).")

    async def process_due_tasks(self) -> int:
        """Finish every in-progress task whose timer has run out."""
        stmt = (
            select(ServantTask)
            .where(
                ServantTask.status == ServantTask.STATUS_IN_PROGRESS,
                ServantTask.estimated_completion <= utcnow(),
            )
            .order_by(ServantTask.id)
        )
        tasks = list((await self._session.execute(stmt)).scalars())
        for task in tasks:
            await self.complete_task(task)
        return len(tasks)

    async def cancel_task(self, user: User, task_id: int) -> dict[str, Any]:
        _, servant = await self._house_and_servant(user)
        if servant is None:
            return {"success": False, "message": "You do not have a servant."}
        stmt = select(ServantTask).where(ServantTask.id == task_id, ServantTask.house_servant_id == servant.id)
        task = (await self._session.execute(stmt)).scalar_one_or_none()
        if task is None:
            return {"success": False, "message": "Task not found."}
        if task.status != ServantTask.STATUS_QUEUED:
            return {"success": False, "message": "Can only cancel queued tasks."}

        if task.task_type == "sawmill_run":
            user.gold += task.task_data.get("gold_paid", 0)
        await self._session.delete(task)
        await self._session.flush()
        return {"success": True, "message": "Task cancelled."}

    async def pay_wages(self, user: User) -> dict[str, Any]:
        _, servant = await self._house_and_servant(user)
        if servant is None:
            return {"success": False, "message": "You do not have a servant."}
        if not servant.on_strike:
            return {"success": False, "message": "Your servant is not on strike."}
        wage = servant.config["weekly_wage"]
        if user.gold < wage:
            return {"success": False, "message": f"Not enough gold. Wage is {wage}g."}

        user.gold -= wage
        servant.on_strike = False
        servant.last_paid_at = utcnow()
        await self._session.flush()
        await self.start_next_task(servant)
        return {"success": True, "message": f"{servant.name} is back to work!"}

    async def process_weekly_wages(self) -> dict[str, int]:
        servants = list((await self._session.execute(select(HouseServant).order_by(HouseServant.id))).scalars())
        stats = {"total": len(servants), "paid": 0, "strikes": 0}
        for servant in servants:
            wage = servant.config["weekly_wage"]
            player = servant.house.player
            if player.gold >= wage:
                player.gold -= wage
                servant.last_paid_at = utcnow()
                stats["paid"] += 1
            else:
                servant.on_strike = True
                stats["strikes"] += 1
        await self._session.flush()
        logger.info("Servant wages processed", **stats)
        return stats

    async def get_servant_data(self, user: User) -> dict[str, Any] | None:
        house, servant = await self._house_and_servant(user)
        if house is None or servant is None:
            return None
        config = servant.config
        current = await self.current_task(servant)
        queued = await self._tasks(servant, ServantTask.STATUS_QUEUED)
        finished = await self._tasks(servant, ServantTask.STATUS_COMPLETED, ServantTask.STATUS_FAILED)
        finished = sorted(finished, key=lambda t: t.completed_at or t.created_at, reverse=True)[:5]
        now = utcnow()
        return {
            "servant_type": servant.servant_type,
            "name": servant.name,
            "on_strike": servant.on_strike,
            "tier_config": dict(config),
            "current_task": {
                "id": current.id,
                "task_type": current.task_type,
                "task_data": current.task_data,
                "seconds_remaining": max(0, int((current.estimated_completion - now).total_seconds())),
            }
            if current and current.estimated_completion
            else None,
            "queued_tasks": [{"id": t.id, "task_type": t.task_type, "task_data": t.task_data} for t in queued],
            "recent_completed": [
                {"id": t.id, "task_type": t.task_type, "result_message": t.result_message} for t in finished
            ],
        }
