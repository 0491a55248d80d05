"""
Turn-based melee combat against monsters.

A fight is a CombatSession. Every player action (attack, eat, flee) is one
round: the player acts, then the monster strikes back once. Fast weapons
hit twice per round; slow ones hit once for extra damage. XP is awarded per
point of damage as it is dealt, so a lost fight still trains.
"""

import random
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.combat import CombatLog, CombatSession, Monster
from ..models.item import Item, PlayerInventory
from ..models.user import User
from ..models.world import resolve_location
from ..structured_logging.enhanced_logging_config import get_logger
from .combat_tables import (
    SPEED_DAMAGE_MULT,
    SPEED_HITS,
    STANCE_BONUSES,
    attack_styles_for,
    clamp_hit_chance,
    dodge_chance,
    get_attack_style_config,
    get_weapon_speed,
)
from .energy_service import EnergyService
from .infirmary_service import InfirmaryService
from .inventory_service import InventoryService
from .skill_service import SkillService

logger = get_logger(__name__)

ENERGY_COST = 1
FLEE_SUCCESS_CHANCE = 50
XP_PER_DAMAGE = 4
EFFECTIVE_MULTIPLIER = 1.5
WEAK_MULTIPLIER = 0.5


def session_to_dict(session: CombatSession) -> dict[str, Any]:
    return {
        "id": session.id,
        "monster": {
            "id": session.monster.id,
            "name": session.monster.name,
            "type": session.monster.type,
            "max_hp": session.monster.max_hp,
            "combat_level": session.monster.combat_level,
        },
        "player_hp": session.player_hp,
        "monster_hp": session.monster_hp,
        "round": session.round,
        "training_style": session.training_style,
        "attack_style_index": session.attack_style_index,
        "xp_gained": session.xp_gained,
        "status": session.status,
    }


class CombatService:
    def __init__(self, session: AsyncSession, rng: random.Random | None = None):
        self._session = session
        self._rng = rng or random.Random()
        self._skills = SkillService(session)
        self._energy = EnergyService(session)
        self._inventory = InventoryService(session)
        self._infirmary = InfirmaryService(session)

    async def get_available_monsters(self, user: User) -> list[Monster]:
        """Monsters of the local biome (or any biome) the player is strong enough to fight."""
        location = await resolve_location(self._session, user.current_location_type, user.current_location_id)
        biome = getattr(location, "biome", None)
        combat_level = await self._skills.get_combat_level(user)
        stmt = (
            select(Monster)
            .where(
                Monster.min_player_combat_level <= combat_level,
                (Monster.biome == biome) | Monster.biome.is_(None),
            )
            .order_by(Monster.combat_level, Monster.id)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def get_active_combat(self, user: User) -> CombatSession | None:
        stmt = select(CombatSession).where(
            CombatSession.user_id == user.id, CombatSession.status == CombatSession.STATUS_ACTIVE
        )
        return (await self._session.execute(stmt)).scalars().first()

    async def get_weapon(self, user: User) -> Item | None:
        for slot in await self._inventory.get_equipped(user):
            if slot.item.equipment_slot == "weapon":
                return slot.item
        return None

    async def get_player_weapon_subtype(self, user: User) -> str:
        weapon = await self.get_weapon(user)
        if weapon is None or not weapon.subtype:
            return "unarmed"
        return weapon.subtype

    async def get_equipment_bonuses(self, user: User) -> dict[str, int]:
        bonuses = {"atk_bonus": 0, "str_bonus": 0, "def_bonus": 0, "hp_bonus": 0}
        for slot in await self._inventory.get_equipped(user):
            for key in bonuses:
                bonuses[key] += getattr(slot.item, key)
        return bonuses

    async def start_combat(self, user: User, monster_id: int, attack_style_index: int = 0) -> dict[str, Any]:
        if user.is_traveling_now():
            return {"success": False, "message": "You cannot fight while traveling."}
        if user.is_in_infirmary_now():
            return {"success": False, "message": "You cannot fight while recovering in the infirmary."}
        if not user.is_alive():
            return {"success": False, "message": "You are dead and cannot fight."}
        if await self.get_active_combat(user) is not None:
            return {"success": False, "message": "You are already in combat."}
        if not EnergyService.has_energy(user, ENERGY_COST):
            return {"success": False, "message": f"You need {ENERGY_COST} energy to start combat."}

        monster = await self._session.get(Monster, monster_id)
        if monster is None:
            return {"success": False, "message": "Monster not found."}
        if not monster.can_be_attacked_by(await self._skills.get_combat_level(user)):
            return {
                "success": False,
                "message": f"You need combat level {monster.min_player_combat_level} to fight this monster.",
            }

        styles = attack_styles_for(await self.get_player_weapon_subtype(user))
        attack_style_index = max(0, min(attack_style_index, len(styles) - 1))
        style = styles[attack_style_index]

        await self._energy.consume_energy(user, ENERGY_COST)
        fight = CombatSession(
            user_id=user.id,
            monster=monster,
            player_hp=user.hp,
            monster_hp=monster.max_hp,
            round=1,
            training_style=style["xp_skills"][0],
            attack_style_index=attack_style_index,
            xp_gained=0,
            status=CombatSession.STATUS_ACTIVE,
            location_type=user.current_location_type,
            location_id=user.current_location_id,
        )
        self._session.add(fight)
        await self._session.flush()
        logger.info("Combat started", user_id=user.id, monster=monster.name, style=style["name"])
        return {
            "success": True,
            "message": f"Combat started against {monster.name}!",
            "data": {"session": session_to_dict(fight)},
        }

    async def _style_for(self, user: User, fight: CombatSession) -> dict[str, Any]:
        return get_attack_style_config(await self.get_player_weapon_subtype(user), fight.attack_style_index)

    async def calculate_player_attack(self, user: User, monster: Monster, fight: CombatSession) -> dict[str, Any]:
        style = await self._style_for(user, fight)
        stance = STANCE_BONUSES[style["weapon_style"]]
        equipment = await self.get_equipment_bonuses(user)

        effective_attack = await self._skills.get_level(user, "attack") + stance["attack"]
        effective_strength = await self._skills.get_level(user, "strength") + stance["strength"]
        monster_defense = monster.defense_against(style["attack_type"])

        hit_chance = clamp_hit_chance(50 + (effective_attack - monster_defense) * 2 + equipment["atk_bonus"])
        if self._rng.randint(1, 100) > hit_chance:
            return {"hit": False, "damage": 0}

        max_hit = int((effective_strength + equipment["str_bonus"]) * 0.5)
        damage = self._rng.randint(1, max(1, max_hit))
        damage = self.apply_weapon_effectiveness(await self.get_weapon(user), monster, damage)
        return {"hit": True, "damage": damage}

    @staticmethod
    def apply_weapon_effectiveness(weapon: Item | None, monster: Monster, damage: int) -> int:
        if weapon is None:
            return damage
        if weapon.effective_against and monster.type in weapon.effective_against:
            return int(damage * EFFECTIVE_MULTIPLIER)
        if weapon.weak_against and monster.type in weapon.weak_against:
            return int(damage * WEAK_MULTIPLIER)
        return damage

    async def calculate_monster_attack(self, user: User, monster: Monster, fight: CombatSession) -> dict[str, Any]:
        if self._rng.randint(1, 100) <= dodge_chance(await self._skills.get_level(user, "agility")):
            return {"hit": False, "damage": 0, "dodged": True}

        style = await self._style_for(user, fight)
        equipment = await self.get_equipment_bonuses(user)
        effective_defense = await self._skills.get_level(user, "defense") + STANCE_BONUSES[style["weapon_style"]]["defense"]

        hit_chance = clamp_hit_chance(50 + (monster.attack_level - effective_defense - equipment["def_bonus"]) * 2)
        if self._rng.randint(1, 100) > hit_chance:
            return {"hit": False, "damage": 0}

        max_hit = int(monster.strength_level * 0.5)
        return {"hit": True, "damage": self._rng.randint(1, max(1, max_hit))}

    async def award_combat_xp(self, user: User, fight: CombatSession, xp: int) -> None:
        """Controlled stances split XP evenly; hitpoints always gets a third."""
        xp_skills = (await self._style_for(user, fight))["xp_skills"]
        if len(xp_skills) > 1:
            per_skill = xp // len(xp_skills)
            if per_skill > 0:
                for skill in xp_skills:
                    await self._skills.add_xp(user, skill, per_skill)
        else:
            await self._skills.add_xp(user, xp_skills[0], xp)

        hp_xp = xp // 3
        if hp_xp > 0:
            await self._skills.add_xp(user, "hitpoints", hp_xp)

    def _log(self, fight: CombatSession, actor: str, action: str, hit: bool, damage: int, **extra) -> CombatLog:
        entry = CombatLog(
            combat_session_id=fight.id,
            round=fight.round,
            actor=actor,
            action=action,
            hit=hit,
            damage=damage,
            player_hp_after=fight.player_hp,
            monster_hp_after=fight.monster_hp,
            xp_gained=extra.get("xp_gained", 0),
            hp_restored=extra.get("hp_restored", 0),
            item_id=extra.get("item_id"),
        )
        self._session.add(entry)
        return entry

    async def _monster_turn(self, user: User, fight: CombatSession, logs: list[CombatLog]) -> None:
        strike = await self.calculate_monster_attack(user, fight.monster, fight)
        fight.player_hp = max(0, fight.player_hp - strike["damage"])
        user.hp = fight.player_hp
        logs.append(self._log(fight, CombatLog.ACTOR_MONSTER, CombatLog.ACTION_ATTACK, strike["hit"], strike["damage"]))

    async def attack(self, user: User) -> dict[str, Any]:
        fight = await self.get_active_combat(user)
        if fight is None:
            return {"success": False, "message": "You are not in combat."}

        logs: list[CombatLog] = []
        speed = get_weapon_speed(await self.get_player_weapon_subtype(user))
        hits = SPEED_HITS.get(speed, 1)
        damage_mult = SPEED_DAMAGE_MULT.get(speed, 1.0)

        for _ in range(hits):
            blow = await self.calculate_player_attack(user, fight.monster, fight)
            damage = blow["damage"]
            if damage_mult != 1.0 and damage > 0:
                damage = round(damage * damage_mult)
            fight.monster_hp = max(0, fight.monster_hp - damage)

            xp = damage * XP_PER_DAMAGE
            if xp > 0:
                fight.xp_gained += xp
                await self.award_combat_xp(user, fight, xp)

            logs.append(
                self._log(fight, CombatLog.ACTOR_PLAYER, CombatLog.ACTION_ATTACK, blow["hit"], damage, xp_gained=xp)
            )
            if fight.is_monster_dead():
                return await self._handle_victory(user, fight, logs)

        await self._monster_turn(user, fight, logs)
        if fight.is_player_dead():
            return await self._handle_defeat(user, fight, logs)

        fight.round += 1
        await self._session.flush()
        return {
            "success": True,
            "message": f"Round {fight.round - 1} complete.",
            "data": {"session": session_to_dict(fight), "logs": [log.to_dict() for log in logs], "status": "active"},
        }

    async def eat(self, user: User, inventory_slot_id: int) -> dict[str, Any]:
        fight = await self.get_active_combat(user)
        if fight is None:
            return {"success": False, "message": "You are not in combat."}

        slot = await self._session.get(PlayerInventory, inventory_slot_id)
        if slot is None or slot.player_id != user.id:
            return {"success": False, "message": "Item not found in your inventory."}
        item = slot.item
        if item.type != "consumable" or item.hp_bonus <= 0:
            return {"success": False, "message": "This item cannot be eaten."}

        logs: list[CombatLog] = []
        restored = min(item.hp_bonus, user.max_hp - fight.player_hp)
        fight.player_hp = min(user.max_hp, fight.player_hp + item.hp_bonus)
        user.hp = fight.player_hp
        await self._inventory.remove_item(user, item, 1)
        logs.append(
            self._log(
                fight, CombatLog.ACTOR_PLAYER, CombatLog.ACTION_EAT, True, 0, item_id=item.id, hp_restored=restored
            )
        )

        await self._monster_turn(user, fight, logs)
        if fight.is_player_dead():
            return await self._handle_defeat(user, fight, logs)

        fight.round += 1
        await self._session.flush()
        return {
            "success": True,
            "message": f"You ate {item.name} and restored {restored} HP.",
            "data": {"session": session_to_dict(fight), "logs": [log.to_dict() for log in logs], "status": "active"},
        }

    async def flee(self, user: User) -> dict[str, Any]:
        fight = await self.get_active_combat(user)
        if fight is None:
            return {"success": False, "message": "You are not in combat."}

        logs: list[CombatLog] = []
        if self._rng.randint(1, 100) <= FLEE_SUCCESS_CHANCE:
            fight.status = CombatSession.STATUS_FLED
            logs.append(self._log(fight, CombatLog.ACTOR_PLAYER, CombatLog.ACTION_FLEE, True, 0))
            await self._session.flush()
            return {
                "success": True,
                "message": "You successfully fled from combat!",
                "data": {"session": session_to_dict(fight), "logs": [log.to_dict() for log in logs], "status": "fled"},
            }

        logs.append(self._log(fight, CombatLog.ACTOR_PLAYER, CombatLog.ACTION_FLEE, False, 0))
        await self._monster_turn(user, fight, logs)
        if fight.is_player_dead():
            return await self._handle_defeat(user, fight, logs)

        fight.round += 1
        await self._session.flush()
        return {
            "success": False,
            "message": "You failed to flee! The monster attacks!",
            "data": {"session": session_to_dict(fight), "logs": [log.to_dict() for log in logs], "status": "active"},
        }

    async def roll_loot(self, user: User, monster: Monster) -> dict[str, Any]:
        """Roll gold and every drop-table row; items that do not fit are lost."""
        gold = self._rng.randint(monster.gold_drop_min, max(monster.gold_drop_min, monster.gold_drop_max))
        user.gold += gold
        items = []
        for entry in monster.loot:
            if self._rng.randint(1, 100) > entry.drop_chance:
                continue
            quantity = self._rng.randint(entry.quantity_min, max(entry.quantity_min, entry.quantity_max))
            if await self._inventory.add_item(user, entry.item, quantity):
                items.append({"name": entry.item.name, "quantity": quantity})
        await self._session.flush()
        return {"gold": gold, "items": items}

    async def _handle_victory(self, user: User, fight: CombatSession, logs: list[CombatLog]) -> dict[str, Any]:
        fight.status = CombatSession.STATUS_VICTORY
        user.hp = fight.player_hp
        style = await self._style_for(user, fight)
        loot = await self.roll_loot(user, fight.monster)
        logger.info("Combat victory", user_id=user.id, monster=fight.monster.name, xp=fight.xp_gained)
        return {
            "success": True,
            "message": f"Victory! You defeated {fight.monster.name}!",
            "data": {
                "session": session_to_dict(fight),
                "logs": [log.to_dict() for log in logs],
                "status": "victory",
                "rewards": {
                    "xp": fight.xp_gained,
                    "skill": fight.training_style,
                    "xp_skills": style["xp_skills"],
                    "current_level": await self._skills.get_level(user, style["xp_skills"][0]),
                    "gold": loot["gold"],
                    "items": loot["items"],
                    "attack_style": style["name"],
                },
            },
        }

    async def _handle_defeat(self, user: User, fight: CombatSession, logs: list[CombatLog]) -> dict[str, Any]:
        fight.status = CombatSession.STATUS_DEFEAT
        user.hp = 0
        await self._energy.set_energy_on_death(user)
        await self._infirmary.admit_player(user)
        logger.info("Combat defeat", user_id=user.id, monster=fight.monster.name)
        return {
            "success": False,
            "message": f"Defeat! You were killed by {fight.monster.name}. You've been taken to the infirmary.",
            "data": {
                "session": session_to_dict(fight),
                "logs": [log.to_dict() for log in logs],
                "status": "defeat",
                "xp_earned": fight.xp_gained,
                "skill": fight.training_style,
                "infirmary": InfirmaryService.get_infirmary_status(user),
            },
        }

    async def get_combat_info(self, user: User) -> dict[str, Any]:
        fight = await self.get_active_combat(user)
        subtype = await self.get_player_weapon_subtype(user)
        return {
            "in_combat": fight is not None,
            "session": session_to_dict(fight) if fight is not None else None,
            "player_stats": {
                "hp": user.hp,
                "max_hp": user.max_hp,
                "combat_level": await self._skills.get_combat_level(user),
                "attack": await self._skills.get_level(user, "attack"),
                "strength": await self._skills.get_level(user, "strength"),
                "defense": await self._skills.get_level(user, "defense"),
            },
            "equipment": await self.get_equipment_bonuses(user),
            "energy": {"current": user.energy, "cost": ENERGY_COST},
            "weapon_subtype": subtype,
            "weapon_speed": get_weapon_speed(subtype),
            "available_attack_styles": attack_styles_for(subtype),
        }

    async def get_available_food(self, user: User) -> list[dict[str, Any]]:
        stmt = (
            select(PlayerInventory)
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(PlayerInventory.player_id == user.id, Item.type == "consumable", Item.hp_bonus > 0)
            .order_by(PlayerInventory.slot_number)
        )
        return [
            {"id": slot.id, "name": slot.item.name, "hp_bonus": slot.item.hp_bonus, "quantity": slot.quantity}
            for slot in (await self._session.execute(stmt)).scalars()
        ]
