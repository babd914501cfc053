"""Messages exchanged between the game server and its clients."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field, fields

from .types import Item, MarketItem

_OMIT_EMPTY = {"omitempty": True}

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _plain(value):
    if isinstance(value, Message):
        return value.to_dict()
    if isinstance(value, (Item, MarketItem)):
        return value.to_dict()
    if isinstance(value, enum.Enum):
        return int(value.value)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _plain(value[k]) for k in sorted(value, key=str)}
    return value


class Message:
    """Base for JSON structures sent over the wire."""

    def to_dict(self) -> dict:
        """Return the message as plain JSON-ready data, in field order."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.metadata.get("omitempty") and not value:
                continue
            result[f.name] = _plain(value)
        return result


@dataclass(kw_only=True)
class Welcome(Message):
    type: str = "WELCOME"
    id: int
    hp: int
    max_hp: int
    attack: int
    defense: int
    speed: float
    gold: int


@dataclass(kw_only=True)
class Entity(Message):
    id: int
    x: float
    y: float
    type: int = 0
    hp: int = field(default=0, metadata=_OMIT_EMPTY)
    max_hp: int = field(default=0, metadata=_OMIT_EMPTY)


@dataclass(kw_only=True)
class Snap(Message):
    type: str = "SNAP"
    players: list = field(default_factory=list)
    monsters: list = field(default_factory=list)
    projectiles: list = field(default_factory=list)
    npcs: list = field(default_factory=list)


@dataclass(kw_only=True)
class ItemSpawn(Message):
    type: str = "ITEM_SPAWN"
    id: int
    item_type: int
    x: float
    y: float


@dataclass(kw_only=True)
class ItemRemove(Message):
    type: str = "ITEM_REMOVE"
    id: int


@dataclass(kw_only=True)
class GoldUpdate(Message):
    type: str = "GOLD_UPDATE"
    amount: int


@dataclass(kw_only=True)
class Leave(Message):
    type: str = "LEAVE"
    id: int


@dataclass(kw_only=True)
class PortalData(Message):
    x: float
    y: float
    radius: float
    target: str


@dataclass(kw_only=True)
class MapSwitch(Message):
    type: str = "MAP_SWITCH"
    map: str
    x: float
    y: float
    portals: list | None = None


@dataclass(kw_only=True)
class InventoryMessage(Message):
    type: str = "INVENTORY"
    items: list = field(default_factory=list)


@dataclass(kw_only=True)
class EquipmentMessage(Message):
    type: str = "EQUIPMENT"
    items: dict = field(default_factory=dict)


@dataclass(kw_only=True)
class EquipRequest(Message):
    type: str = "EQUIP"
    item_id: int = 0
    slot: int = 0


@dataclass(kw_only=True)
class UnequipRequest(Message):
    type: str = "UNEQUIP"
    slot: int = 0


@dataclass(kw_only=True)
class MoveRequest(Message):
    type: str = "MOVE"
    x: float = 0.0
    y: float = 0.0


@dataclass(kw_only=True)
class SellRequest(Message):
    type: str = "SELL"
    item_id: int = 0


@dataclass(kw_only=True)
class MarketListRequest(Message):
    type: str = "MARKET_LIST"
    item_id: int = 0
    price: int = 0


@dataclass(kw_only=True)
class MarketBuyRequest(Message):
    type: str = "MARKET_BUY"
    market_id: int = 0


@dataclass(kw_only=True)
class MarketUpdate(Message):
    type: str = "MARKET_UPDATE"
    items: list | None = None


def _wire(value):
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    if isinstance(value, dict):
        return {k: _wire(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_wire(v) for v in value]
    return value


def encode(message) -> bytes:
    """Encode a message as compact JSON bytes.

    Raises ValueError when the message holds a non-finite number.
    """
    text = json.dumps(
        _wire(message.to_dict()),
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    )
    for char, escape in _HTML_ESCAPES.items():
        text = text.replace(char, escape)
    return text.encode("utf-8")