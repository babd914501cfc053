"""Decoding of client commands and dispatch to the player and game."""

from __future__ import annotations

import json
import logging

log = logging.getLogger(__name__)

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class _Malformed(Exception):
    """A command field does not have the type its message declares."""


def _reject_constant(name):
    raise ValueError(f"invalid JSON constant {name}")


def _lookup(message, name):
    """Find a field by exact name, falling back to a case-insensitive match."""
    if name in message:
        return message[name]
    lowered = name.lower()
    found = None
    for key, value in message.items():
        if key.lower() == lowered:
            found = value
    return found


def _number(message, name):
    value = _lookup(message, name)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _Malformed(name)
    try:
        return float(value)
    except OverflowError as exc:
        raise _Malformed(name) from exc


def _integer(message, name):
    value = _lookup(message, name)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise _Malformed(name)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise _Malformed(name)
    return value


def _move(player, message):
    player.move(_number(message, "x"), _number(message, "y"))


def _equip(player, message):
    player.equip(_integer(message, "item_id"), _integer(message, "slot"))


def _unequip(player, message):
    player.unequip(_integer(message, "slot"))


def _sell(player, message):
    player.sell(_integer(message, "item_id"))


def _market_list(player, message):
    item_id = _integer(message, "item_id")
    price = _integer(message, "price")
    if player.game is not None:
        player.game.list_market_item(player, item_id, price)


def _market_buy(player, message):
    market_id = _integer(message, "market_id")
    if player.game is not None:
        player.game.buy_market_item(player, market_id)


_HANDLERS = {
    "MOVE": _move,
    "EQUIP": _equip,
    "UNEQUIP": _unequip,
    "SELL": _sell,
    "MARKET_LIST": _market_list,
    "MARKET_BUY": _market_buy,
}


def handle_command(player, text):
    """Apply one JSON command line from a player; anything unusable is ignored."""
    text = text.strip()
    if not text:
        return
    try:
        message = json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        return
    if not isinstance(message, dict):
        return
    kind = message.get("type")
    if not isinstance(kind, str):
        return
    handler = _HANDLERS.get(kind)
    if handler is None:
        return
    try:
        handler(player, message)
    except _Malformed as exc:
        log.debug("malformed %s command from player %d: field %s", kind, player.id, exc)