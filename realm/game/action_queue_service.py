"""
Player action queues: repeat one activity until a count is reached or it stops.

The service owns the queue rows and runs exactly one iteration at a time;
the background worker in ``realm.services.action_queue_processor`` decides
when the next iteration is due.
"""

import random
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.action_queue import ACTION_TYPES, ActionQueue
from ..models.base import utcnow
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .agility_service import AgilityService
from .cooking_service import CookingService
from .crafting_service import CraftingService
from .gathering_service import GatheringService
from .training_service import TrainingService

logger = get_logger(__name__)

STALE_QUEUE_MINUTES = 5
MAX_QUEUE_TOTAL = 1000

# Which action_params key each action type needs
REQUIRED_PARAMS = {
    "train": "exercise",
    "gather": "activity",
    "cook": "recipe",
    "craft": "recipe",
    "smelt": "recipe",
    "agility": "obstacle",
}


def queue_to_dict(queue: ActionQueue) -> dict[str, Any]:
    return {
        "id": queue.id,
        "action_type": queue.action_type,
        "action_params": queue.action_params,
        "total": queue.total,
        "completed": queue.completed,
        "total_xp": queue.total_xp,
        "total_quantity": queue.total_quantity,
        "item_name": queue.item_name,
        "last_level_up": queue.last_level_up,
        "status": queue.status,
        "stop_reason": queue.stop_reason,
        "is_infinite": queue.is_infinite(),
        "dismissed_at": queue.dismissed_at.isoformat() if queue.dismissed_at else None,
    }


class ActionQueueService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()

    async def get_active_queue(self, user: User) -> ActionQueue | None:
        stmt = (
            select(ActionQueue)
            .where(ActionQueue.user_id == user.id, ActionQueue.status == ActionQueue.STATUS_ACTIVE)
            .order_by(ActionQueue.id.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_latest_queue(self, user: User) -> ActionQueue | None:
        """Most recent queue the player has not dismissed."""
        stmt = (
            select(ActionQueue)
            .where(ActionQueue.user_id == user.id, ActionQueue.dismissed_at.is_(None))
            .order_by(ActionQueue.id.desc())
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def start_queue(
        self, user: User, action_type: str, action_params: dict[str, Any], total: int = 0
    ) -> dict[str, Any]:
        if action_type not in ACTION_TYPES:
            return {"success": False, "message": "Unknown action type."}
        required = REQUIRED_PARAMS[action_type]
        if not action_params.get(required):
            return {"success": False, "message": f"Missing action parameter: {required}."}
        if total < 0 or total > MAX_QUEUE_TOTAL:
            return {"success": False, "message": f"Total must be between 0 and {MAX_QUEUE_TOTAL}."}
        if await self.get_active_queue(user) is not None:
            return {"success": False, "message": "You already have an active queue running."}

        queue = ActionQueue(
            user_id=user.id,
            action_type=action_type,
            action_params=dict(action_params),
            total=total,
            completed=0,
            total_xp=0,
            total_quantity=0,
            status=ActionQueue.STATUS_ACTIVE,
        )
        self._session.add(queue)
        await self._session.flush()
        logger.info("Action queue started", user_id=user.id, queue_id=queue.id, action_type=action_type, total=total)
        return {"success": True, "message": "Action queue started.", "queue": queue}

    async def cancel_queue(self, user: User) -> dict[str, Any]:
        queue = await self.get_active_queue(user)
        if queue is None:
            return {"success": False, "message": "You have no active queue."}
        queue.mark(ActionQueue.STATUS_CANCELLED, "Cancelled by player.")
        await self._session.flush()
        return {"success": True, "message": "Action queue cancelled.", "queue": queue}

    async def dismiss_queue(self, user: User, queue_id: int) -> dict[str, Any]:
        queue = await self._session.get(ActionQueue, queue_id)
        if queue is None or queue.user_id != user.id:
            return {"success": False, "message": "Queue not found."}
        if queue.is_active():
            return {"success": False, "message": "Cancel the queue before dismissing it."}
        queue.dismissed_at = utcnow()
        await self._session.flush()
        return {"success": True, "message": "Queue dismissed."}

    async def cleanup_stale_queues(self, stale_minutes: int = STALE_QUEUE_MINUTES) -> int:
        """Fail active queues that have not progressed for ``stale_minutes``; returns how many."""
        cutoff = utcnow() - timedelta(minutes=stale_minutes)
        stmt = select(ActionQueue).where(
            ActionQueue.status == ActionQueue.STATUS_ACTIVE, ActionQueue.updated_at < cutoff
        )
        stale = list((await self._session.execute(stmt)).scalars())
        for queue in stale:
            queue.mark(ActionQueue.STATUS_FAILED, "Queue timed out without progress.")
        await self._session.flush()
        if stale:
            logger.warning("Stale action queues failed", count=len(stale))
        return len(stale)

    async def _run_action(self, user: User, queue: ActionQueue) -> dict[str, Any]:
        params = queue.action_params or {}
        match queue.action_type:
            case "train":
                return await TrainingService(self._session).train(user, params.get("exercise", ""))
            case "gather":
                return await GatheringService(self._session, rng=self._rng).gather(
                    user, params.get("activity", ""), params.get("resource")
                )
            case "cook":
                return await CookingService(self._session).cook(user, params.get("recipe", ""))
            case "craft" | "smelt":
                return await CraftingService(self._session).craft(user, params.get("recipe", ""))
            case "agility":
                return await AgilityService(self._session, rng=self._rng).train(user, params.get("obstacle", ""))
        return {"success": False, "message": "Unknown action type."}

    async def process_action_queue(self, queue_id: int) -> bool:
        """
        Run one iteration of a queue.

        Returns True when another iteration should be scheduled.
        """
        queue = await self._session.get(ActionQueue, queue_id)
        if queue is None or not queue.is_active():
            return False

        user = await self._session.get(User, queue.user_id)
        if user is None:
            queue.mark(ActionQueue.STATUS_FAILED, "Player not found.")
            await self._session.flush()
            return False

        if user.is_traveling_now():
            queue.mark(ActionQueue.STATUS_CANCELLED, "You started traveling.")
            await self._session.flush()
            return False

        if user.is_in_infirmary_now():
            queue.mark(ActionQueue.STATUS_CANCELLED, "You were sent to the infirmary.")
            await self._session.flush()
            return False

        result = await self._run_action(user, queue)

        failed_attempt = queue.action_type == "agility" and result.get("failed") is True
        if not result.get("success") and not failed_attempt:
            queue.mark(ActionQueue.STATUS_FAILED, result.get("message") or "Action failed.")
            await self._session.flush()
            logger.info("Action queue stopped", queue_id=queue.id, reason=queue.stop_reason)
            return False

        queue.completed += 1
        queue.total_xp += result.get("xp_awarded") or 0
        if "item" in result:
            queue.item_name = result["item"]["name"]
            queue.total_quantity += result["item"].get("quantity", 1)
        elif "resource" in result:
            queue.item_name = result["resource"]["name"]
            queue.total_quantity += result.get("quantity", 1)
        else:
            queue.total_quantity += 1

        if result.get("leveled_up") and result.get("new_level") and result.get("skill"):
            queue.last_level_up = {"skill": result["skill"], "level": result["new_level"]}

        if queue.total > 0 and queue.completed >= queue.total:
            queue.status = ActionQueue.STATUS_COMPLETED
            await self._session.flush()
            logger.info("Action queue completed", queue_id=queue.id, completed=queue.completed)
            return False

        await self._session.flush()
        return True

    async def mark_unexpected_failure(self, queue_id: int) -> None:
        queue = await self._session.get(ActionQueue, queue_id)
        if queue is not None and queue.is_active():
            queue.mark(ActionQueue.STATUS_FAILED, "An unexpected error occurred.")
            await self._session.flush()

    async def list_active_queue_ids(self) -> list[int]:
        stmt = select(ActionQueue.id).where(ActionQueue.status == ActionQueue.STATUS_ACTIVE).order_by(ActionQueue.id)
        return list((await self._session.execute(stmt)).scalars())
