"""
Combat models: monsters, their loot tables, fights and the per-round log.
"""

# pylint: disable=too-few-public-methods  # Reason: SQLAlchemy model data class

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .item import Item

MONSTER_TYPES = ("humanoid", "beast", "undead", "dragon", "demon", "elemental", "giant", "goblinoid")


class Monster(TimestampMixin, Base):
    __tablename__ = "monsters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default="beast", nullable=False)
    biome: Mapped[str | None] = mapped_column(String(20), nullable=True)
    max_hp: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    attack_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    strength_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    defense_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    stab_defense: Mapped[int | None] = mapped_column(Integer, nullable=True)
    slash_defense: Mapped[int | None] = mapped_column(Integer, nullable=True)
    crush_defense: Mapped[int | None] = mapped_column(Integer, nullable=True)
    combat_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    xp_reward: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gold_drop_min: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gold_drop_max: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_player_combat_level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_boss: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    loot: Mapped[list[MonsterLoot]] = relationship("MonsterLoot", lazy="selectin", cascade="all, delete-orphan")

    def can_be_attacked_by(self, combat_level: int) -> bool:
        return combat_level >= self.min_player_combat_level

    def defense_against(self, attack_type: str) -> int:
        """Per-style defense; an unset (None) style falls back to the flat defense level, 0 is kept."""
        value = {"stab": self.stab_defense, "slash": self.slash_defense, "crush": self.crush_defense}.get(attack_type)
        return value if value is not None else self.defense_level

    def __repr__(self) -> str:
        return f"<Monster(id={self.id}, name={self.name!r})>"


class MonsterLoot(Base):
    """One row of a monster's drop table; ``drop_chance`` is a percentage."""

    __tablename__ = "monster_loot"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    monster_id: Mapped[int] = mapped_column(ForeignKey("monsters.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    drop_chance: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    quantity_min: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    quantity_max: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    item: Mapped[Item] = relationship("Item", lazy="joined")


class CombatSession(TimestampMixin, Base):
    __tablename__ = "combat_sessions"

    STATUS_ACTIVE = "active"
    STATUS_VICTORY = "victory"
    STATUS_DEFEAT = "defeat"
    STATUS_FLED = "fled"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    monster_id: Mapped[int] = mapped_column(ForeignKey("monsters.id", ondelete="CASCADE"), nullable=False)
    player_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    monster_hp: Mapped[int] = mapped_column(Integer, nullable=False)
    round: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    training_style: Mapped[str] = mapped_column(String(20), default="attack", nullable=False)
    attack_style_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    xp_gained: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=STATUS_ACTIVE, nullable=False)
    location_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    location_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    monster: Mapped[Monster] = relationship("Monster", lazy="joined")

    def is_monster_dead(self) -> bool:
        return self.monster_hp <= 0

    def is_player_dead(self) -> bool:
        return self.player_hp <= 0

    def __repr__(self) -> str:
        return f"<CombatSession(id={self.id}, status={self.status!r}, round={self.round})>"


class CombatLog(Base):
    __tablename__ = "combat_logs"

    ACTOR_PLAYER = "player"
    ACTOR_MONSTER = "monster"
    ACTION_ATTACK = "attack"
    ACTION_EAT = "eat"
    ACTION_FLEE = "flee"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    combat_session_id: Mapped[int] = mapped_column(
        ForeignKey("combat_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    actor: Mapped[str] = mapped_column(String(10), nullable=False)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    hit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    damage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    player_hp_after: Mapped[int] = mapped_column(Integer, nullable=False)
    monster_hp_after: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_gained: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    hp_restored: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    item_id: Mapped[int | None] = mapped_column(ForeignKey("items.id", ondelete="SET NULL"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "round": self.round,
            "actor": self.actor,
            "action": self.action,
            "hit": self.hit,
            "damage": self.damage,
            "player_hp_after": self.player_hp_after,
            "monster_hp_after": self.monster_hp_after,
            "xp_gained": self.xp_gained,
            "hp_restored": self.hp_restored,
        }
