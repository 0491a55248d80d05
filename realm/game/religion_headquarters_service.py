"""
Religion treasury donations and the headquarters upgrade pipeline.

An upgrade is started by the prophet, funded by members with gold and
devotion, and once fully funded it spends a fixed number of hours under
construction before the new tier takes effect.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.religion import (
    HQ_MAX_TIER,
    HQ_TIER_COSTS,
    HQ_TIER_NAMES,
    HQ_TIER_PRAYER_REQUIREMENTS,
    HqConstructionProject,
    Religion,
    ReligionHeadquarters,
    ReligionMember,
    ReligionTreasury,
    ReligionTreasuryTransaction,
)
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger
from .skill_service import SkillService

logger = get_logger(__name__)

HQ_LOCATION_TYPES = ("village", "town", "barony", "kingdom")


def project_to_dict(project: HqConstructionProject) -> dict[str, Any]:
    return {
        "id": project.id,
        "target_level": project.target_level,
        "target_name": HQ_TIER_NAMES.get(project.target_level),
        "status": project.status,
        "gold_required": project.gold_required,
        "gold_invested": project.gold_invested,
        "devotion_required": project.devotion_required,
        "devotion_invested": project.devotion_invested,
        "progress": project.progress,
        "construction_ends_at": project.construction_ends_at.isoformat() if project.construction_ends_at else None,
    }


class ReligionHeadquartersService:
    def __init__(self, session: AsyncSession):
        self._session = session
        self._skills = SkillService(session)

    async def get_membership(self, user: User, religion: Religion) -> ReligionMember | None:
        stmt = select(ReligionMember).where(
            ReligionMember.user_id == user.id, ReligionMember.religion_id == religion.id
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_or_create_treasury(self, religion: Religion) -> ReligionTreasury:
        stmt = select(ReligionTreasury).where(ReligionTreasury.religion_id == religion.id)
        treasury = (await self._session.execute(stmt)).scalar_one_or_none()
        if treasury is None:
            treasury = ReligionTreasury(religion_id=religion.id, balance=0, total_collected=0, total_distributed=0)
            self._session.add(treasury)
            await self._session.flush()
        return treasury

    async def get_headquarters(self, religion: Religion) -> ReligionHeadquarters | None:
        stmt = select(ReligionHeadquarters).where(ReligionHeadquarters.religion_id == religion.id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def get_open_project(self, hq: ReligionHeadquarters) -> HqConstructionProject | None:
        stmt = select(HqConstructionProject).where(
            HqConstructionProject.religion_hq_id == hq.id,
            HqConstructionProject.status.in_(HqConstructionProject.OPEN_STATUSES),
        )
        return (await self._session.execute(stmt)).scalars().first()

    async def donate_to_treasury(self, user: User, religion: Religion, amount: int) -> dict[str, Any]:
        if amount <= 0:
            return {"success": False, "message": "Donation amount must be positive."}
        if user.gold < amount:
            return {"success": False, "message": "You do not have enough gold."}
        if await self.get_membership(user, religion) is None:
            return {"success": False, "message": "You are not a member of this religion."}

        treasury = await self.get_or_create_treasury(religion)
        user.gold -= amount
        treasury.balance += amount
        treasury.total_collected += amount
        self._session.add(
            ReligionTreasuryTransaction(
                treasury_id=treasury.id,
                user_id=user.id,
                type=ReligionTreasuryTransaction.TYPE_DONATION,
                amount=amount,
                balance_after=treasury.balance,
                description=f"Donation from {user.username}",
            )
        )
        await self._session.flush()
        logger.info("Treasury donation", user_id=user.id, religion_id=religion.id, amount=amount)
        return {"success": True, "message": f"You donated {amount} gold to the treasury."}

    async def get_treasury_info(self, religion: Religion, limit: int = 10) -> dict[str, Any]:
        treasury = await self.get_or_create_treasury(religion)
        stmt = (
            select(ReligionTreasuryTransaction)
            .where(ReligionTreasuryTransaction.treasury_id == treasury.id)
            .order_by(ReligionTreasuryTransaction.id.desc())
            .limit(limit)
        )
        transactions = (await self._session.execute(stmt)).scalars()
        return {
            "balance": treasury.balance,
            "total_collected": treasury.total_collected,
            "total_distributed": treasury.total_distributed,
            "recent_transactions": [
                {
                    "type": tx.type,
                    "amount": tx.amount,
                    "balance_after": tx.balance_after,
                    "description": tx.description,
                    "created_at": tx.created_at.isoformat(),
                }
                for tx in transactions
            ],
        }

    async def get_headquarters_info(self, religion: Religion) -> dict[str, Any] | None:
        hq = await self.get_headquarters(religion)
        if hq is None:
            return None
        project = await self.get_open_project(hq)
        return {
            "id": hq.id,
            "name": hq.name,
            "tier": hq.tier,
            "tier_name": hq.tier_name,
            "is_built": hq.is_built(),
            "location_type": hq.location_type,
            "location_id": hq.location_id,
            "bonuses": hq.combined_effects(),
            "next_tier": None if hq.tier >= HQ_MAX_TIER else {
                "tier": hq.tier + 1,
                "name": HQ_TIER_NAMES[hq.tier + 1],
                "cost": hq.upgrade_cost(),
                "prayer_required": hq.next_tier_prayer_requirement(),
            },
            "active_project": project_to_dict(project) if project else None,
        }

    async def build_headquarters(
        self, user: User, religion: Religion, location_type: str, location_id: int
    ) -> dict[str, Any]:
        member = await self.get_membership(user, religion)
        if member is None or not member.is_prophet():
            return {"success": False, "message": "Only the Prophet can build the headquarters."}
        hq = await self.get_headquarters(religion)
        if hq is not None and hq.is_built():
            return {"success": False, "message": "The headquarters has already been built."}
        if location_type not in HQ_LOCATION_TYPES:
            return {"success": False, "message": "Invalid location type."}

        if hq is None:
            hq = ReligionHeadquarters(religion=religion, religion_id=religion.id, tier=1)
            self._session.add(hq)
        hq.location_type = location_type
        hq.location_id = location_id
        hq.name = f"{religion.name} {HQ_TIER_NAMES[1]}"
        await self._session.flush()
        logger.info("Religion headquarters built", religion_id=religion.id, location_type=location_type)
        return {"success": True, "message": f"The {religion.name} Chapel has been established!", "headquarters": hq}

    async def start_hq_upgrade(self, user: User, religion: Religion) -> dict[str, Any]:
        member = await self.get_membership(user, religion)
        if member is None or not member.is_prophet():
            return {"success": False, "message": "Only the Prophet can start upgrades."}
        hq = await self.get_headquarters(religion)
        if hq is None or not hq.is_built():
            return {"success": False, "message": "You must build the headquarters first."}
        if await self.get_open_project(hq) is not None:
            return {"success": False, "message": "An HQ upgrade is already in progress."}
        if hq.tier >= HQ_MAX_TIER:
            return {"success": False, "message": "The headquarters is already at maximum tier."}

        target = hq.tier + 1
        target_name = HQ_TIER_NAMES[target]
        prayer_required = HQ_TIER_PRAYER_REQUIREMENTS[target]
        if await self._skills.get_level(user, "prayer") < prayer_required:
            return {
                "success": False,
                "message": f"Your Prayer level is too low. You need level {prayer_required} Prayer to upgrade to {target_name}.",
            }

        cost = HQ_TIER_COSTS[target]
        project = HqConstructionProject(
            headquarters=hq,
            religion_hq_id=hq.id,
            project_type=HqConstructionProject.TYPE_HQ_UPGRADE,
            target_level=target,
            status=HqConstructionProject.STATUS_PENDING,
            gold_required=cost["gold"],
            devotion_required=cost["devotion"],
            started_by=user.id,
        )
        self._session.add(project)
        await self._session.flush()
        logger.info("HQ upgrade started", religion_id=religion.id, target_level=target, project_id=project.id)
        return {"success": True, "message": f"Upgrade to {target_name} has been started!", "project": project}

    async def contribute_to_project(
        self, user: User, project: HqConstructionProject, gold: int = 0, devotion: int = 0
    ) -> dict[str, Any]:
        if project.is_constructing():
            return {"success": False, "message": "This project is under construction and cannot accept more contributions."}
        if not project.is_active():
            return {"success": False, "message": "This project is no longer active."}

        religion = project.headquarters.religion
        member = await self.get_membership(user, religion)
        if member is None:
            return {"success": False, "message": "You are not a member of this religion."}
        gold = max(0, gold)
        devotion = max(0, devotion)
        if gold > user.gold:
            return {"success": False, "message": "You do not have enough gold."}
        if devotion > member.devotion:
            return {"success": False, "message": "You do not have enough devotion."}

        gold_added, devotion_added = project.contribute(gold, devotion)
        if not gold_added and not devotion_added:
            return {"success": False, "message": "This project has already received enough contributions."}

        user.gold -= gold_added
        member.devotion -= devotion_added
        hq = project.headquarters
        hq.total_gold_invested += gold_added
        hq.total_devotion_invested += devotion_added

        parts = ["Contribution added!"]
        if gold_added:
            parts.append(f"{gold_added} gold.")
        if devotion_added:
            parts.append(f"{devotion_added} devotion.")
        returned = []
        if gold > gold_added:
            returned.append(f"{gold - gold_added} gold")
        if devotion > devotion_added:
            returned.append(f"{devotion - devotion_added} devotion")
        if returned:
            parts.append("Overage returned: " + ", ".join(returned) + ".")

        if project.requirements_met():
            project.start_construction_timer()
            hours = project.construction_hours()
            parts.append(f"Construction has begun! Completion in {hours} hour{'s' if hours != 1 else ''}.")

        await self._session.flush()
        logger.info(
            "HQ project contribution",
            user_id=user.id,
            project_id=project.id,
            gold=gold_added,
            devotion=devotion_added,
            progress=project.progress,
        )
        return {"success": True, "message": " ".join(parts), "project": project_to_dict(project)}

    async def finalize_project(self, project: HqConstructionProject) -> None:
        hq = project.headquarters
        hq.tier = project.target_level
        hq.name = f"{hq.religion.name} {HQ_TIER_NAMES[hq.tier]}"
        project.complete()
        await self._session.flush()
        logger.info("HQ upgrade completed", headquarters_id=hq.id, tier=hq.tier)

    async def complete_due_constructions(self) -> int:
        now = utcnow()
        stmt = select(HqConstructionProject).where(
            HqConstructionProject.status == HqConstructionProject.STATUS_CONSTRUCTING,
            HqConstructionProject.construction_ends_at <= now,
        )
        projects = list((await self._session.execute(stmt)).unique().scalars())
        for project in projects:
            await self.finalize_project(project)
        return len(projects)

    async def get_member_bonuses(self, user: User) -> dict[str, int]:
        stmt = select(ReligionMember).where(ReligionMember.user_id == user.id)
        member = (await self._session.execute(stmt)).scalar_one_or_none()
        if member is None:
            return {}
        stmt = select(ReligionHeadquarters).where(ReligionHeadquarters.religion_id == member.religion_id)
        hq = (await self._session.execute(stmt)).scalar_one_or_none()
        if hq is None or not hq.is_built():
            return {}
        return hq.combined_effects()

    async def get_devotion_gain_modifier(self, user: User) -> float:
        bonuses = await self.get_member_bonuses(user)
        return 1 + bonuses.get("devotion_bonus", 0) / 100
