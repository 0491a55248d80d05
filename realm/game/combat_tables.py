"""
Rule tables for melee combat.

Attack styles are keyed by weapon subtype. Each style names its damage type
(stab/slash/crush), its stance and the skills that receive XP.
"""

from typing import Any


def _style(name: str, attack_type: str, weapon_style: str, *xp_skills: str) -> dict[str, Any]:
    return {"name": name, "attack_type": attack_type, "weapon_style": weapon_style, "xp_skills": list(xp_skills)}


_CONTROLLED = ("attack", "strength", "defense")

_STAB_SWORD = [
    _style("Stab", "stab", "accurate", "attack"),
    _style("Lunge", "stab", "aggressive", "strength"),
    _style("Slash", "slash", "aggressive", "strength"),
    _style("Block", "stab", "defensive", "defense"),
]
_SLASH_SWORD = [
    _style("Chop", "slash", "accurate", "attack"),
    _style("Slash", "slash", "aggressive", "strength"),
    _style("Lunge", "stab", "controlled", *_CONTROLLED),
    _style("Block", "slash", "defensive", "defense"),
]
_AXE = [
    _style("Chop", "slash", "accurate", "attack"),
    _style("Hack", "slash", "aggressive", "strength"),
    _style("Smash", "crush", "aggressive", "strength"),
    _style("Block", "slash", "defensive", "defense"),
]

WEAPON_ATTACK_STYLES: dict[str, list[dict[str, Any]]] = {
    "dagger": _STAB_SWORD,
    "sword": _STAB_SWORD,
    "scimitar": _SLASH_SWORD,
    "longsword": _SLASH_SWORD,
    "claws": _SLASH_SWORD,
    "axe": _AXE,
    "battleaxe": _AXE,
    "2hsword": [
        _style("Chop", "slash", "accurate", "attack"),
        _style("Slash", "slash", "aggressive", "strength"),
        _style("Smash", "crush", "aggressive", "strength"),
        _style("Block", "slash", "defensive", "defense"),
    ],
    "mace": [
        _style("Pound", "crush", "accurate", "attack"),
        _style("Pummel", "crush", "aggressive", "strength"),
        _style("Spike", "stab", "controlled", *_CONTROLLED),
        _style("Block", "crush", "defensive", "defense"),
    ],
    "warhammer": [
        _style("Pound", "crush", "accurate", "attack"),
        _style("Pummel", "crush", "aggressive", "strength"),
        _style("Block", "crush", "defensive", "defense"),
    ],
    "spear": [
        _style("Lunge", "stab", "controlled", *_CONTROLLED),
        _style("Swipe", "slash", "controlled", *_CONTROLLED),
        _style("Pound", "crush", "controlled", *_CONTROLLED),
        _style("Block", "stab", "defensive", "defense"),
    ],
    "throwing": [
        _style("Accurate", "stab", "accurate", "attack"),
        _style("Rapid", "stab", "aggressive", "strength"),
        _style("Longrange", "stab", "defensive", "defense"),
    ],
    "unarmed": [
        _style("Punch", "crush", "accurate", "attack"),
        _style("Kick", "crush", "aggressive", "strength"),
        _style("Block", "crush", "defensive", "defense"),
    ],
}

# Invisible level boosts per stance
STANCE_BONUSES = {
    "accurate": {"attack": 3, "strength": 0, "defense": 0},
    "aggressive": {"attack": 0, "strength": 3, "defense": 0},
    "defensive": {"attack": 0, "strength": 0, "defense": 3},
    "controlled": {"attack": 1, "strength": 1, "defense": 1},
}

# Lower is faster
WEAPON_SPEED = {
    "dagger": 4,
    "claws": 4,
    "scimitar": 4,
    "sword": 4,
    "unarmed": 4,
    "mace": 5,
    "axe": 5,
    "longsword": 5,
    "spear": 5,
    "throwing": 5,
    "battleaxe": 6,
    "warhammer": 6,
    "2hsword": 7,
}
DEFAULT_WEAPON_SPEED = 5

SPEED_HITS = {4: 2, 5: 1, 6: 1, 7: 1}
SPEED_DAMAGE_MULT = {4: 1.0, 5: 1.0, 6: 1.15, 7: 1.3}

# Multipliers on defense_level when seeding per-style monster defenses
DEFENSE_TYPE_MODIFIERS = {
    "humanoid": {"stab": 1.0, "slash": 1.0, "crush": 1.0},
    "beast": {"stab": 0.8, "slash": 1.1, "crush": 1.0},
    "undead": {"stab": 1.2, "slash": 1.1, "crush": 0.8},
    "dragon": {"stab": 0.8, "slash": 1.3, "crush": 1.1},
    "demon": {"stab": 1.1, "slash": 1.0, "crush": 0.9},
    "elemental": {"stab": 1.0, "slash": 1.2, "crush": 0.8},
    "giant": {"stab": 1.0, "slash": 0.9, "crush": 1.1},
    "goblinoid": {"stab": 0.9, "slash": 1.0, "crush": 1.0},
}


def attack_styles_for(weapon_subtype: str) -> list[dict[str, Any]]:
    return WEAPON_ATTACK_STYLES.get(weapon_subtype, WEAPON_ATTACK_STYLES["unarmed"])


def get_attack_style_config(weapon_subtype: str, style_index: int) -> dict[str, Any]:
    styles = attack_styles_for(weapon_subtype)
    return styles[max(0, min(style_index, len(styles) - 1))]


def get_weapon_speed(weapon_subtype: str) -> int:
    return WEAPON_SPEED.get(weapon_subtype, DEFAULT_WEAPON_SPEED)


def clamp_hit_chance(chance: float) -> float:
    return max(10, min(95, chance))


def dodge_chance(agility_level: int) -> float:
    return min(10, agility_level * 0.2)
