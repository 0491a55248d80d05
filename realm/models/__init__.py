"""
Database models for the realm server.

Importing this package registers every table on ``Base.metadata``:
- World: calendar and the location hierarchy
- Players: users, skills, inventory, bank accounts
- Simulation: settlement NPCs, stockpiles, market prices
- Features: action queue, combat, roles, taxes, religion HQs, housing, tavern
"""

from .action_queue import ActionQueue
from .bank import BankAccount, BankTransaction
from .combat import CombatLog, CombatSession, Monster, MonsterLoot
from .house import GardenPlot, HouseFurniture, HouseRoom, HouseServant, HouseStorage, PlayerHouse, ServantTask
from .item import Item, LocationStockpile, PlayerInventory
from .market import MarketPrice, MarketTransaction
from .npc import LocationNpc
from .religion import (
    HqConstructionProject,
    Religion,
    ReligionHeadquarters,
    ReligionMember,
    ReligionTreasury,
    ReligionTreasuryTransaction,
)
from .role import PlayerRole, Role, RolePetition
from .skill import PlayerSkill
from .tax import LocationTreasury, TaxCollection, TreasuryTransaction
from .tavern import MinigamePlay, MinigameReward, MinigameScore, TavernDiceGame
from .user import User
from .world import Barony, Kingdom, Town, Village, WorldState

__all__ = [
    "User",
    "PlayerSkill",
    "Item",
    "PlayerInventory",
    "LocationStockpile",
    "BankAccount",
    "BankTransaction",
    "WorldState",
    "Kingdom",
    "Barony",
    "Village",
    "Town",
    "LocationNpc",
    "MarketPrice",
    "MarketTransaction",
    "ActionQueue",
    "Monster",
    "MonsterLoot",
    "CombatSession",
    "CombatLog",
    "Role",
    "PlayerRole",
    "RolePetition",
    "Religion",
    "ReligionMember",
    "ReligionTreasury",
    "ReligionTreasuryTransaction",
    "ReligionHeadquarters",
    "HqConstructionProject",
    "PlayerHouse",
    "HouseRoom",
    "HouseFurniture",
    "HouseStorage",
    "HouseServant",
    "ServantTask",
    "GardenPlot",
    "LocationTreasury",
    "TreasuryTransaction",
    "TaxCollection",
    "TavernDiceGame",
    "MinigamePlay",
    "MinigameScore",
    "MinigameReward",
]
