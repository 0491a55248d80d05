"""
Player inventory: numbered slots holding stacks of catalogue items. The slot
count comes from ``GameConfig.inventory_slots`` (28 by default).

Stackable items top up existing partial stacks before opening new slots;
equipped slots are never consumed by removals.
"""

import math

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_config
from ..models.item import Item, PlayerInventory
from ..models.user import User
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

STARTER_KIT = {
    "Bronze Dagger": 1,
    "Wooden Shield": 1,
    "Leather Vest": 1,
    "Bread": 10,
    "Bronze Pickaxe": 1,
    "Fishing Rod": 1,
}


class InventoryService:
    def __init__(self, session: AsyncSession, max_slots: int | None = None):
        self._session = session
        self._max_slots = max_slots if max_slots is not None else get_config().game.inventory_slots

    async def resolve_item(self, item: Item | int | str) -> Item | None:
        """Accept an Item, an item id or an item name."""
        if isinstance(item, Item):
            return item
        if isinstance(item, int):
            return await self._session.get(Item, item)
        return (await self._session.execute(select(Item).where(Item.name == item))).scalar_one_or_none()

    async def get_slots(self, user: User) -> list[PlayerInventory]:
        stmt = select(PlayerInventory).where(PlayerInventory.player_id == user.id).order_by(PlayerInventory.slot_number)
        return list((await self._session.execute(stmt)).scalars())

    async def _partial_stacks(self, user: User, item: Item) -> list[PlayerInventory]:
        stmt = (
            select(PlayerInventory)
            .where(
                PlayerInventory.player_id == user.id,
                PlayerInventory.item_id == item.id,
                PlayerInventory.quantity < item.max_stack,
            )
            .order_by(PlayerInventory.slot_number)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def add_item(self, user: User, item: Item | int | str, quantity: int = 1) -> bool:
        """
        Add ``quantity`` of an item.

        Returns False for an unknown item or when the inventory fills up; in
        the latter case whatever fitted stays added.
        """
        resolved = await self.resolve_item(item)
        if resolved is None or quantity <= 0:
            return False

        remaining = quantity
        if resolved.stackable:
            for slot in await self._partial_stacks(user, resolved):
                can_add = min(remaining, resolved.max_stack - slot.quantity)
                slot.quantity += can_add
                remaining -= can_add
                if remaining <= 0:
                    await self._session.flush()
                    return True

        while remaining > 0:
            empty = await self.find_empty_slot(user)
            if empty is None:
                await self._session.flush()
                logger.debug("Inventory full", user_id=user.id, item=resolved.name, left_over=remaining)
                return False
            amount = min(remaining, resolved.max_stack) if resolved.stackable else 1
            self._session.add(
                PlayerInventory(
                    player_id=user.id,
                    item_id=resolved.id,
                    item=resolved,
                    slot_number=empty,
                    quantity=amount,
                    is_equipped=False,
                    weeks_stored=0,
                )
            )
            await self._session.flush()
            remaining -= amount
        return True

    async def remove_item(self, user: User, item: Item | int | str, quantity: int = 1) -> bool:
        """Take from unequipped slots, smallest stacks first; True when all were removed."""
        resolved = await self.resolve_item(item)
        if resolved is None:
            return False
        stmt = (
            select(PlayerInventory)
            .where(
                PlayerInventory.player_id == user.id,
                PlayerInventory.item_id == resolved.id,
                PlayerInventory.is_equipped.is_(False),
            )
            .order_by(PlayerInventory.quantity, PlayerInventory.slot_number)
        )
        remaining = quantity
        for slot in (await self._session.execute(stmt)).scalars():
            if remaining <= 0:
                break
            if slot.quantity <= remaining:
                remaining -= slot.quantity
                await self._session.delete(slot)
            else:
                slot.quantity -= remaining
                remaining = 0
        await self._session.flush()
        return remaining == 0

    async def count_item(self, user: User, item: Item | int | str, exclude_equipped: bool = False) -> int:
        resolved = await self.resolve_item(item)
        if resolved is None:
            return 0
        stmt = select(func.coalesce(func.sum(PlayerInventory.quantity), 0)).where(
            PlayerInventory.player_id == user.id, PlayerInventory.item_id == resolved.id
        )
        if exclude_equipped:
            stmt = stmt.where(PlayerInventory.is_equipped.is_(False))
        return int((await self._session.execute(stmt)).scalar_one())

    async def has_item(
        self, user: User, item: Item | int | str, quantity: int = 1, exclude_equipped: bool = False
    ) -> bool:
        return await self.count_item(user, item, exclude_equipped=exclude_equipped) >= quantity

    async def find_empty_slot(self, user: User) -> int | None:
        """Lowest free slot number, filling gaps first."""
        stmt = select(PlayerInventory.slot_number).where(PlayerInventory.player_id == user.id)
        used = set((await self._session.execute(stmt)).scalars())
        for slot_number in range(self._max_slots):
            if slot_number not in used:
                return slot_number
        return None

    async def has_empty_slot(self, user: User) -> bool:
        return await self.find_empty_slot(user) is not None

    async def free_slots(self, user: User) -> int:
        stmt = select(func.count(PlayerInventory.id)).where(PlayerInventory.player_id == user.id)
        return self._max_slots - int((await self._session.execute(stmt)).scalar_one())

    async def slots_needed_for_item(self, user: User, item: Item, quantity: int) -> int:
        """Empty slots required to hold ``quantity`` more, after topping up partial stacks."""
        if not item.stackable:
            return quantity
        remaining = quantity
        for slot in await self._partial_stacks(user, item):
            remaining -= item.max_stack - slot.quantity
            if remaining <= 0:
                return 0
        return math.ceil(remaining / item.max_stack)

    async def space_for_item(self, user: User, item: Item) -> int:
        """How many more of ``item`` would fit right now."""
        free = await self.free_slots(user)
        if not item.stackable:
            return free
        partial_room = sum(item.max_stack - slot.quantity for slot in await self._partial_stacks(user, item))
        return partial_room + free * item.max_stack

    async def get_inventory_summary(self, user: User) -> list[dict]:
        """Resource and misc totals by item name."""
        stmt = (
            select(Item.name, func.sum(PlayerInventory.quantity))
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(PlayerInventory.player_id == user.id, Item.type.in_(("resource", "misc")))
            .group_by(Item.id, Item.name)
            .order_by(Item.name)
        )
        return [{"name": name, "quantity": int(qty)} for name, qty in (await self._session.execute(stmt)).all()]

    async def give_starter_kit(self, user: User) -> None:
        for name, quantity in STARTER_KIT.items():
            item = await self.resolve_item(name)
            if item is not None:
                await self.add_item(user, item, quantity)

    async def equip_item(self, user: User, slot_number: int) -> dict:
        slot = await self._get_slot(user, slot_number)
        if slot is None:
            return {"success": False, "message": "No item in that slot."}
        if not slot.item.is_equippable():
            return {"success": False, "message": "That item cannot be equipped."}
        if slot.is_equipped:
            return {"success": False, "message": "That item is already equipped."}

        stmt = (
            select(PlayerInventory)
            .join(Item, PlayerInventory.item_id == Item.id)
            .where(
                PlayerInventory.player_id == user.id,
                PlayerInventory.is_equipped.is_(True),
                Item.equipment_slot == slot.item.equipment_slot,
            )
        )
        for current in (await self._session.execute(stmt)).scalars():
            current.is_equipped = False
        slot.is_equipped = True
        await self._session.flush()
        return {"success": True, "message": f"Equipped {slot.item.name}."}

    async def unequip_item(self, user: User, slot_number: int) -> dict:
        slot = await self._get_slot(user, slot_number)
        if slot is None or not slot.is_equipped:
            return {"success": False, "message": "That item is not equipped."}
        slot.is_equipped = False
        await self._session.flush()
        return {"success": True, "message": f"Unequipped {slot.item.name}."}

    async def get_equipped(self, user: User) -> list[PlayerInventory]:
        stmt = select(PlayerInventory).where(
            PlayerInventory.player_id == user.id, PlayerInventory.is_equipped.is_(True)
        )
        return list((await self._session.execute(stmt)).scalars())

    async def _get_slot(self, user: User, slot_number: int) -> PlayerInventory | None:
        stmt = select(PlayerInventory).where(
            PlayerInventory.player_id == user.id, PlayerInventory.slot_number == slot_number
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()
