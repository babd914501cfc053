"""Core game data: items, monsters, projectiles, NPCs and market listings."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339 with trailing fractional zeros removed."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset()
    if not offset:
        return text + "Z"
    total = int(offset.total_seconds())
    sign = "+" if total >= 0 else "-"
    total = abs(total)
    return f"{text}{sign}{total // 3600:02d}:{total % 3600 // 60:02d}"


class ItemType(enum.IntEnum):
    GOLD = 0
    WEAPON = 1
    ARMOR = 2


class ProjectileType(enum.IntEnum):
    DEFAULT = 0
    FIRE = 1
    WATER = 2
    GRASS = 3


class MonsterType(enum.IntEnum):
    WATER = 0
    FIRE = 1
    GRASS = 2


class NPCType(enum.IntEnum):
    SHOP = 0
    MARKET = 1


@dataclass
class Item:
    """An item lying on a map, carried in an inventory or equipped."""

    id: int = 0
    type: ItemType = ItemType.GOLD
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    created_at: datetime = ZERO_TIME
    attack: int = 0
    defense: int = 0
    speed: float = 0.0
    projectile_type: ProjectileType = ProjectileType.DEFAULT

    def to_dict(self) -> dict:
        """Return the wire representation of the item."""
        return {
            "ID": self.id,
            "Type": int(self.type),
            "Name": self.name,
            "X": self.x,
            "Y": self.y,
            "CreatedAt": _format_time(self.created_at),
            "Attack": self.attack,
            "Defense": self.defense,
            "Speed": self.speed,
            "ProjectileType": int(self.projectile_type),
        }


@dataclass
class Monster:
    id: int
    x: float
    y: float
    type: MonsterType
    hp: int
    max_hp: int


@dataclass
class Projectile:
    id: int
    owner_id: int
    x: float
    y: float
    vx: float
    vy: float
    type: ProjectileType = ProjectileType.DEFAULT


@dataclass
class NPC:
    id: int
    x: float
    y: float
    type: NPCType
    name: str


@dataclass
class MarketItem:
    """An item offered for sale on the player market."""

    id: int
    seller_id: int
    seller_name: str
    item: Item | None
    price: int
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Return the wire representation of the listing."""
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "item": self.item.to_dict() if self.item is not None else None,
            "price": self.price,
            "created_at": _format_time(self.created_at),
        }