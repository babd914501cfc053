import json

import pytest

from mmorpg.game import Game
from mmorpg.handler import handle_command
from mmorpg.player import BASE_ATTACK, Player
from mmorpg.types import Item, ItemType


class _Recorder:
    def __init__(self):
        self.messages = []

    def write(self, data):
        self.messages.append(json.loads(data))
        return len(data)

    def close(self):
        pass


def _player_with(*items):
    player = Player(1, _Recorder())
    player.inventory.extend(items)
    return player


def test_move_updates_position():
    player = _player_with()
    handle_command(player, '{"type":"MOVE","x":10.5,"y":20.0}')
    assert (player.x, player.y) == (10.5, 20.0)


def test_surrounding_whitespace_is_trimmed():
    player = _player_with()
    handle_command(player, '  {"type":"MOVE","x":1.5,"y":2.5}\r\n')
    assert (player.x, player.y) == (1.5, 2.5)


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "not json",
        "[1, 2]",
        '{"x": 1}',
        '{"type": 5}',
        '{"type": "DANCE"}',
        '{"type": "MOVE", "x": "left", "y": 2}',
        '{"type": "MOVE", "x": NaN, "y": 1}',
        '{"type": "MOVE", "x": true, "y": 1}',
    ],
)
def test_unusable_commands_are_ignored(text):
    player = _player_with()
    handle_command(player, text)
    assert (player.x, player.y) == (400.0, 300.0)
    assert player.conn.messages == []


def test_missing_and_null_fields_read_as_zero():
    player = _player_with()
    handle_command(player, '{"type":"MOVE","y":7,"x":null}')
    assert (player.x, player.y) == (0.0, 7.0)


def test_field_names_match_case_insensitively():
    player = _player_with()
    handle_command(player, '{"type":"MOVE","X":1.5,"Y":2.5}')
    assert (player.x, player.y) == (1.5, 2.5)


def test_equip_moves_item_into_slot():
    sword = Item(id=5, type=ItemType.WEAPON, name="Sword", attack=7)
    player = _player_with(sword)
    handle_command(player, '{"type":"EQUIP","item_id":5,"slot":1}')
    assert player.equipment[1] is sword
    assert player.inventory == []
    assert player.attack - BASE_ATTACK == sword.attack
    assert [m["type"] for m in player.conn.messages] == ["STATS", "INVENTORY", "EQUIPMENT"]


@pytest.mark.parametrize(
    "text",
    [
        '{"type":"EQUIP","item_id":5.0,"slot":1}',
        '{"type":"EQUIP","item_id":5,"slot":"1"}',
        '{"type":"EQUIP","item_id":1180591620717411303424,"slot":1}',
    ],
)
def test_equip_with_mistyped_fields_is_ignored(text):
    sword = Item(id=5, type=ItemType.WEAPON, name="Sword", attack=7)
    player = _player_with(sword)
    handle_command(player, text)
    assert player.inventory == [sword]
    assert all(slot is None for slot in player.equipment)


def test_unequip_returns_item_to_inventory():
    shield = Item(id=9, type=ItemType.ARMOR, name="Shield", defense=3)
    player = _player_with(shield)
    handle_command(player, '{"type":"EQUIP","item_id":9,"slot":2}')
    handle_command(player, '{"type":"UNEQUIP","slot":2}')
    assert player.inventory == [shield]
    assert all(slot is None for slot in player.equipment)
    assert player.defense == 0


def test_sell_without_game_pays_gold():
    item = Item(id=3, type=ItemType.WEAPON, name="Sword", attack=2, defense=1)
    player = _player_with(item)
    handle_command(player, '{"type":"SELL","item_id":3}')
    assert player.gold == 25
    assert player.inventory == []
    assert player.conn.messages[-1] == {"type": "GOLD_UPDATE", "amount": 25}


def test_market_commands_need_a_game():
    item = Item(id=3, type=ItemType.WEAPON, name="Sword")
    player = _player_with(item)
    handle_command(player, '{"type":"MARKET_LIST","item_id":3,"price":50}')
    assert player.inventory == [item]


def test_market_list_and_reclaim_through_game():
    game = Game()
    player = game.add_player(None)
    item = player.inventory[0]
    before = len(player.inventory)

    handle_command(player, json.dumps({"type": "MARKET_LIST", "item_id": item.id, "price": 50}))
    listings = list(game.market.values())
    assert len(listings) == 1
    assert listings[0].item is item
    assert listings[0].price == 50
    assert len(player.inventory) == before - 1

    handle_command(player, json.dumps({"type": "MARKET_BUY", "market_id": listings[0].id}))
    assert game.market == {}
    assert player.inventory[-1] is item
    assert len(player.inventory) == before


def test_market_list_with_non_positive_price_is_ignored():
    game = Game()
    player = game.add_player(None)
    item = player.inventory[0]
    handle_command(player, json.dumps({"type": "MARKET_LIST", "item_id": item.id, "price": 0}))
    assert game.market == {}
    assert player.inventory[0] is item