"""
Static tables for player housing: house tiers, the room and furniture
catalogue, room adjacency bonuses, servant tiers, sawmill recipes and
the crops a house garden can grow.
"""

from typing import Any

HOUSE_TIERS: dict[str, dict[str, Any]] = {
    "cottage": {
        "name": "Cottage",
        "level": 1,
        "title_level": 2,
        "cost": 50_000,
        "grid": 3,
        "max_rooms": 3,
        "storage": 100,
        "upkeep": 100,
    },
    "house": {
        "name": "House",
        "level": 20,
        "title_level": 3,
        "cost": 250_000,
        "grid": 4,
        "max_rooms": 6,
        "storage": 250,
        "upkeep": 750,
    },
    "manor": {
        "name": "Manor",
        "level": 40,
        "title_level": 4,
        "cost": 1_000_000,
        "grid": 5,
        "max_rooms": 10,
        "storage": 500,
        "upkeep": 1_500,
    },
}
HOUSE_TIER_ORDER = list(HOUSE_TIERS)

UPKEEP_PERIOD_DAYS = 7
UPKEEP_DEGRADATION = 10
BUFFS_DISABLED_AT_CONDITION = 50
STORAGE_DISABLED_AT_CONDITION = 25


def _option(name: str, level: int, materials: dict[str, int], xp: int, **effect: int) -> dict[str, Any]:
    option: dict[str, Any] = {"name": name, "level": level, "materials": materials, "xp": xp}
    if effect:
        option["effect"] = effect
    return option


ROOMS: dict[str, dict[str, Any]] = {
    "parlour": {
        "name": "Parlour",
        "level": 1,
        "cost": 15_000,
        "hotspots": {
            "chair": {
                "crude_chair": _option("Crude Chair", 1, {"Plank": 3, "Nails": 2}, 30),
                "wooden_chair": _option("Wooden Chair", 10, {"Oak Plank": 3}, 120),
            },
            "bookcase": {
                "wooden_bookcase": _option("Wooden Bookcase", 4, {"Plank": 4, "Nails": 3}, 50),
                "oak_bookcase": _option("Oak Bookcase", 20, {"Oak Plank": 4}, 180),
            },
            "rug": {
                "brown_rug": _option("Brown Rug", 2, {"Cloth": 2}, 20),
            },
        },
    },
    "kitchen": {
        "name": "Kitchen",
        "level": 5,
        "cost": 50_000,
        "hotspots": {
            "stove": {
                "firepit": _option("Firepit", 5, {"Plank": 5, "Nails": 3}, 50, burn_reduction=25),
                "iron_stove": _option("Iron Stove", 20, {"Oak Plank": 3, "Steel Bar": 2}, 150, burn_reduction=45),
            },
            "larder": {
                "wooden_larder": _option("Wooden Larder", 9, {"Plank": 6, "Nails": 4}, 70),
                "oak_larder": _option("Oak Larder", 30, {"Oak Plank": 5}, 250),
            },
            "table": {
                "kitchen_table": _option("Kitchen Table", 8, {"Plank": 4, "Nails": 2}, 65),
            },
        },
    },
    "bedroom": {
        "name": "Bedroom",
        "level": 10,
        "cost": 50_000,
        "hotspots": {
            "bed": {
                "straw_bed": _option("Straw Bed", 10, {"Plank": 5, "Cloth": 2}, 80, energy_regen_bonus=5),
                "wooden_bed": _option("Wooden Bed", 20, {"Oak Plank": 4, "Cloth": 3}, 200, energy_regen_bonus=10),
            },
            "wardrobe": {
                "wooden_wardrobe": _option("Wooden Wardrobe", 12, {"Plank": 4, "Nails": 3}, 90),
            },
            "rug": {
                "brown_rug": _option("Brown Rug", 2, {"Cloth": 2}, 20),
            },
        },
    },
    "dining_room": {
        "name": "Dining Room",
        "level": 15,
        "cost": 75_000,
        "hotspots": {
            "table": {
                "wooden_table": _option("Wooden Table", 15, {"Plank": 4, "Nails": 2}, 100),
                "oak_table": _option("Oak Table", 30, {"Oak Plank": 4}, 280),
            },
            "bell_pull": {
                "rope_bell": _option("Rope Bell", 20, {"Plank": 2, "Cloth": 2}, 130),
                "brass_bell": _option(
                    "Brass Bell", 40, {"Willow Plank": 2, "Steel Bar": 2}, 380, servant_speed_bonus=10
                ),
            },
        },
    },
    "workshop": {
        "name": "Workshop",
        "level": 20,
        "cost": 150_000,
        "hotspots": {
            "workbench": {
                "wooden_workbench": _option(
                    "Wooden Workbench", 20, {"Oak Plank": 4, "Steel Bar": 2}, 180, crafting_xp_bonus=3
                ),
                "oak_workbench": _option(
                    "Oak Workbench", 35, {"Willow Plank": 5, "Steel Bar": 3}, 350, crafting_xp_bonus=5
                ),
            },
            "whetstone": {
                "rough_whetstone": _option(
                    "Rough Whetstone", 25, {"Limestone Brick": 2, "Steel Bar": 1}, 220, attack_bonus=1
                ),
                "fine_whetstone": _option(
                    "Fine Whetstone", 45, {"Marble Block": 2, "Mithril Bar": 1}, 500, attack_bonus=3
                ),
            },
        },
    },
    "study": {
        "name": "Study",
        "level": 30,
        "cost": 200_000,
        "hotspots": {
            "lectern": {
                "wooden_lectern": _option("Wooden Lectern", 30, {"Oak Plank": 4, "Cloth": 2}, 250),
            },
            "bookcase": {
                "oak_bookcase": _option("Oak Bookcase", 30, {"Oak Plank": 5}, 260, gathering_xp_bonus=2),
                "marble_bookcase": _option(
                    "Marble Bookcase", 55, {"Marble Block": 3, "Gold Leaf": 2}, 700, gathering_xp_bonus=5
                ),
            },
        },
    },
    "hearth_room": {
        "name": "Hearth Room",
        "level": 30,
        "cost": 150_000,
        "hotspots": {
            "fireplace": {
                "stone_fireplace": _option(
                    "Stone Fireplace", 30, {"Limestone Brick": 3, "Oak Plank": 2}, 250, max_hp_bonus=3
                ),
                "marble_fireplace": _option(
                    "Marble Fireplace", 55, {"Marble Block": 3, "Gold Leaf": 1}, 700, max_hp_bonus=8
                ),
            },
            "armchair": {
                "oak_armchair": _option("Oak Armchair", 30, {"Oak Plank": 3, "Cloth": 2}, 240),
            },
        },
    },
    "forge": {
        "name": "Forge",
        "level": 35,
        "cost": 300_000,
        "hotspots": {
            "anvil": {
                "iron_anvil": _option("Iron Anvil", 35, {"Steel Bar": 3, "Oak Plank": 3}, 300, smithing_xp_bonus=3),
                "steel_anvil": _option(
                    "Steel Anvil", 55, {"Mithril Bar": 3, "Willow Plank": 3}, 650, smithing_xp_bonus=6
                ),
            },
            "bellows": {
                "leather_bellows": _option(
                    "Leather Bellows", 37, {"Oak Plank": 2, "Cloth": 3}, 300, smithing_speed_bonus=5
                ),
            },
        },
    },
    "chapel": {
        "name": "Chapel",
        "level": 40,
        "cost": 400_000,
        "hotspots": {
            "altar": {
                "wooden_altar": _option("Wooden Altar", 40, {"Oak Plank": 6, "Cloth": 2}, 400, prayer_xp_bonus=50),
                "stone_altar": _option(
                    "Stone Altar", 55, {"Limestone Brick": 4, "Marble Block": 3}, 700, prayer_xp_bonus=100
                ),
            },
            "incense_burner": {
                "wooden_burner": _option("Wooden Burner", 41, {"Oak Plank": 3}, 350, prayer_xp_bonus=25),
            },
            "icon": {
                "holy_symbol": _option("Holy Symbol", 42, {"Oak Plank": 2, "Silver Bar": 1}, 360, prayer_bonus=1),
            },
        },
    },
    "garden": {
        "name": "Garden",
        "level": 25,
        "cost": 125_000,
        "hotspots": {
            **{
                f"planter_{n}": {
                    "wooden_planter": _option("Wooden Planter", 25, {"Plank": 4, "Nails": 5}, 300),
                    "stone_planter": _option("Stone Planter", 40, {"Limestone Brick": 3, "Willow Plank": 2}, 600),
                    "marble_planter": _option("Marble Planter", 60, {"Marble Block": 2, "Yew Plank": 2}, 1_000),
                }
                for n in range(1, 5)
            },
            "compost_bin": {
                "basic_compost": _option("Basic Compost Bin", 25, {"Plank": 3, "Nails": 3}, 250),
                "advanced_compost": _option("Advanced Compost Bin", 45, {"Willow Plank": 4, "Steel Bar": 2}, 700),
            },
            "irrigation": {
                "basic_watering": _option(
                    "Watering Can Stand", 25, {"Plank": 2, "Bronze Bar": 2}, 200, herblore_xp_bonus=2
                ),
                "drip_system": _option(
                    "Drip System", 45, {"Willow Plank": 3, "Steel Bar": 3}, 650, herblore_xp_bonus=3, auto_water=1
                ),
                "sprinkler": _option(
                    "Sprinkler System", 65, {"Yew Plank": 3, "Gold Bar": 2}, 1_100, herblore_xp_bonus=5, auto_water=1
                ),
            },
            "lighting": {
                "candle_rack": _option("Candle Rack", 25, {"Plank": 2, "Bronze Bar": 1}, 200, farming_xp_bonus=2),
                "lantern_array": _option(
                    "Lantern Array", 40, {"Willow Plank": 3, "Steel Bar": 2}, 550, farming_xp_bonus=3
                ),
                "crystal_lights": _option(
                    "Crystal Grow Lights", 60, {"Yew Plank": 3, "Gold Bar": 2}, 1_000, farming_xp_bonus=5
                ),
            },
        },
    },
    "servant_quarters": {
        "name": "Servant Quarters",
        "level": 40,
        "cost": 250_000,
        "hotspots": {
            "bed": {
                "servant_cot": _option("Servant Cot", 40, {"Oak Plank": 4, "Cloth": 2}, 380),
                "servant_bed": _option("Servant Bed", 55, {"Willow Plank": 4, "Cloth": 3}, 600),
            },
            "bell": {
                "brass_bell": _option(
                    "Brass Bell", 55, {"Willow Plank": 2, "Steel Bar": 2}, 600, servant_speed_bonus=15
                ),
            },
        },
    },
}

# (room_a, room_b, effect_key, value, description)
ADJACENCY_BONUSES = [
    ("kitchen", "dining_room", "cooking_xp_bonus", 3, "Kitchen + Dining Room: +3% Cooking XP"),
    ("forge", "workshop", "smithing_xp_bonus", 3, "Forge + Workshop: +3% Smithing XP"),
    ("chapel", "study", "prayer_xp_bonus", 3, "Chapel + Study: +3% Prayer XP"),
    ("bedroom", "hearth_room", "energy_regen_bonus", 5, "Bedroom + Hearth Room: +5% Energy Regen"),
    ("garden", "kitchen", "herblore_xp_bonus", 3, "Garden + Kitchen: +3% Herblore XP"),
]

SERVANT_TIERS: dict[str, dict[str, Any]] = {
    "handyman": {"name": "Handyman", "level": 20, "hire_cost": 5_000, "weekly_wage": 100, "carry_capacity": 6, "base_speed": 60},
    "maid": {"name": "Maid", "level": 30, "hire_cost": 15_000, "weekly_wage": 250, "carry_capacity": 10, "base_speed": 30},
    "butler": {"name": "Butler", "level": 45, "hire_cost": 50_000, "weekly_wage": 500, "carry_capacity": 16, "base_speed": 15},
    "head_butler": {
        "name": "Head Butler",
        "level": 60,
        "hire_cost": 150_000,
        "weekly_wage": 1_000,
        "carry_capacity": 24,
        "base_speed": 8,
    },
}

# plank -> (log it is sawn from, fee per plank)
PLANK_RECIPES = {
    "Plank": {"log": "Wood", "fee": 10},
    "Oak Plank": {"log": "Oak Wood", "fee": 40},
    "Willow Plank": {"log": "Willow Wood", "fee": 100},
    "Maple Plank": {"log": "Maple Wood", "fee": 250},
    "Yew Plank": {"log": "Yew Wood", "fee": 600},
    "Mahogany Plank": {"log": "Mahogany Wood", "fee": 1_500},
}

GARDEN_PLOTS = ("planter_1", "planter_2", "planter_3", "planter_4")
GARDEN_GROWTH_MULTIPLIER = 1.5
GARDEN_WITHER_HOURS = 24
GARDEN_BASE_QUALITY = 60
GARDEN_COMPOSTED_QUALITY = 75
GARDEN_TEND_ENERGY = 2
MAX_COMPOST_CHARGES = 10
COMPOST_BONES = 5
COMPOST_CHARGES_PER_BATCH = 3
COMPOST_QUALITY_BONUS = 15

# Crops that grow indoors: only herbs
GARDEN_CROPS: dict[str, dict[str, Any]] = {
    "herbs": {
        "name": "Herbs",
        "seed": "Herb Seeds",
        "harvest": "Herbs",
        "grow_minutes": 25,
        "farming_level": 10,
        "farming_xp": 12,
        "yield_min": 1,
        "yield_max": 4,
    },
}


def get_furniture_config(room_type: str, hotspot: str, furniture_key: str) -> dict[str, Any] | None:
    return ROOMS.get(room_type, {}).get("hotspots", {}).get(hotspot, {}).get(furniture_key)
