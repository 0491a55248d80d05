"""
The infirmary: where defeated players wait until they are healed.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

INFIRMARY_MINUTES = 10


class InfirmaryService:
    def __init__(self, session: AsyncSession, minutes: int = INFIRMARY_MINUTES):
        self._session = session
        self._minutes = minutes

    async def admit_player(self, user: User) -> None:
        user.admit_to_infirmary(self._minutes)
        await self._session.flush()
        logger.info("Player admitted to infirmary", user_id=user.id, heals_at=user.infirmary_heals_at.isoformat())

    async def check_and_discharge(self, user: User) -> bool:
        released = user.check_and_discharge()
        if released:
            await self._session.flush()
            logger.info("Player discharged from infirmary", user_id=user.id)
        return released

    @staticmethod
    def get_infirmary_status(user: User, now: datetime | None = None) -> dict[str, Any] | None:
        """None unless the player is still being treated."""
        now = now or utcnow()
        if not user.is_in_infirmary_now(now):
            return None
        return {
            "is_in_infirmary": True,
            "remaining_seconds": max(0, int((user.infirmary_heals_at - now).total_seconds())),
            "heals_at": user.infirmary_heals_at.isoformat(),
            "started_at": user.infirmary_started_at.isoformat() if user.infirmary_started_at else None,
        }

    async def discharge(self, user: User) -> dict[str, Any]:
        if not user.is_in_infirmary:
            return {"success": False, "message": "You are not in the infirmary."}
        if not await self.check_and_discharge(user):
            return {"success": False, "message": "You are still recovering."}
        return {"success": True, "message": "You have been discharged. You feel fully healed."}
