"""Players: position, inventory, equipment and the messages sent to them."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .protocol import EquipmentMessage, GoldUpdate, InventoryMessage, Welcome, encode
from .types import Item, NPCType

log = logging.getLogger(__name__)

EQUIPMENT_SLOTS = 5
SHOP_RANGE = 100.0
BASE_ATTACK = 10
BASE_DEFENSE = 0
BASE_SPEED = 5.0


@runtime_checkable
class Connection(Protocol):
    """Anything a player's messages can be written to."""

    def write(self, data: bytes) -> int:
        """Send one encoded message and return the number of bytes written."""

    def close(self) -> None:
        """Close the underlying transport."""


@dataclass(eq=False)
class Player:
    """A connected player and everything the server keeps about them."""

    id: int
    conn: Connection | None = None
    game: Any = field(default=None, repr=False)
    map_id: str = "town"
    x: float = 400.0
    y: float = 300.0
    dir_x: float = 0.0
    dir_y: float = 1.0
    last_shoot: float = -math.inf
    last_portal_use: float = -math.inf
    inventory: list[Item] = field(default_factory=list)
    equipment: list[Item | None] = field(default_factory=lambda: [None] * EQUIPMENT_SLOTS)
    hp: int = 100
    max_hp: int = 100
    attack: int = BASE_ATTACK
    defense: int = BASE_DEFENSE
    speed: float = BASE_SPEED
    gold: int = 0

    def __str__(self) -> str:
        return f"Player {self.id} [{self.x:.2f}, {self.y:.2f}] Inv: {len(self.inventory)}"

    def _find_item(self, item_id: int) -> int | None:
        return next(
            (index for index, item in enumerate(self.inventory) if item.id == item_id),
            None,
        )

    def equip(self, item_id: int, slot: int) -> None:
        """Move an inventory item into an equipment slot, swapping out what was there."""
        if not 0 <= slot < EQUIPMENT_SLOTS:
            return
        index = self._find_item(item_id)
        if index is None:
            return
        if self.equipment[slot] is not None:
            self.unequip(slot)
        item = self.inventory.pop(index)
        self.equipment[slot] = item
        self.recalculate_stats()
        self.send_inventory()
        self.send_equipment()

    def unequip(self, slot: int) -> None:
        """Return the item in an equipment slot to the inventory."""
        if not 0 <= slot < EQUIPMENT_SLOTS:
            return
        item = self.equipment[slot]
        if item is None:
            return
        self.equipment[slot] = None
        self.inventory.append(item)
        self.recalculate_stats()
        self.send_inventory()
        self.send_equipment()

    def _near_shop(self) -> bool:
        world_map = self.game.maps.get(self.map_id)
        if world_map is None:
            return True
        return any(
            (self.x - npc.x) ** 2 + (self.y - npc.y) ** 2 < SHOP_RANGE * SHOP_RANGE
            for npc in world_map.npcs.values()
            if npc.type == NPCType.SHOP
        )

    def sell(self, item_id: int) -> None:
        """Sell an inventory item to a nearby shopkeeper for gold."""
        if self.game is not None and not self._near_shop():
            return
        index = self._find_item(item_id)
        if index is None:
            return
        item = self.inventory.pop(index)
        stats = item.attack + item.defense + int(item.speed)
        self.gold += 10 + stats * 5
        self.send_inventory()
        self.send_json(GoldUpdate(amount=self.gold))

    def recalculate_stats(self) -> None:
        """Derive attack, defense and speed from equipment and report them."""
        worn = [item for item in self.equipment if item is not None]
        self.attack = BASE_ATTACK + sum(item.attack for item in worn)
        self.defense = BASE_DEFENSE + sum(item.defense for item in worn)
        self.speed = BASE_SPEED + sum(item.speed for item in worn if item.speed > 0)
        self.send_json(
            Welcome(
                type="STATS",
                id=self.id,
                hp=self.hp,
                max_hp=self.max_hp,
                attack=self.attack,
                defense=self.defense,
                speed=self.speed,
                gold=self.gold,
            )
        )

    def send_inventory(self) -> None:
        self.send_json(InventoryMessage(items=list(self.inventory)))

    def send_equipment(self) -> None:
        worn = {slot: item for slot, item in enumerate(self.equipment) if item is not None}
        self.send_json(EquipmentMessage(items=worn))

    def move(self, x: float, y: float) -> None:
        """Place the player at a new position, facing the way they moved."""
        dx = x - self.x
        dy = y - self.y
        if dx != 0 or dy != 0:
            self.dir_x = dx
            self.dir_y = dy
        self.x = x
        self.y = y

    def send(self, data: bytes) -> None:
        """Write already encoded bytes to the player's connection."""
        if self.conn is None:
            return
        try:
            self.conn.write(data)
        except OSError as exc:
            log.debug("write to player %d failed: %s", self.id, exc)

    def send_json(self, message) -> None:
        """Encode a message and send it to the player."""
        if self.conn is None:
            return
        try:
            data = encode(message)
        except ValueError:
            return
        self.send(data)