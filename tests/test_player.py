import json
from types import SimpleNamespace

import pytest

from mmorpg.player import Player
from mmorpg.types import NPC, Item, ItemType, NPCType, ProjectileType
from mmorpg.world_map import WorldMap


class RecordingConnection:
    def __init__(self):
        self.messages = []
        self.raw = []

    def write(self, data):
        self.raw.append(data)
        self.messages.append(json.loads(data))
        return len(data)

    def close(self):
        pass


class FailingConnection:
    def __init__(self):
        self.attempts = 0

    def write(self, data):
        self.attempts += 1
        raise OSError("broken pipe")

    def close(self):
        pass


def kinds(conn):
    return [m["type"] for m in conn.messages]


def weapon(item_id, attack=7, speed=0.0):
    return Item(
        id=item_id,
        type=ItemType.WEAPON,
        name="Sword",
        attack=attack,
        speed=speed,
        projectile_type=ProjectileType.FIRE,
    )


def shop_game(npc_x=400.0, npc_y=200.0):
    town = WorldMap("town")
    town.npcs[1] = NPC(id=1, x=npc_x, y=npc_y, type=NPCType.SHOP, name="Shopkeeper")
    return SimpleNamespace(maps={"town": town})


def test_new_player():
    p = Player(1)
    assert p.id == 1
    assert (p.x, p.y) == (400, 300)
    assert p.map_id == "town"
    assert (p.hp, p.max_hp, p.attack, p.defense, p.speed, p.gold) == (100, 100, 10, 0, 5.0, 0)
    assert p.equipment == [None] * 5


def test_player_move():
    p = Player(1)
    p.move(10.5, 20.0)
    assert p.x == 10.5
    assert p.y == 20.0
    assert (p.dir_x, p.dir_y) == (10.5 - 400, 20.0 - 300)


def test_move_in_place_keeps_direction():
    p = Player(1)
    p.move(400, 300)
    assert (p.dir_x, p.dir_y) == (0, 1)


def test_equip_weapon_updates_stats_and_reports():
    conn = RecordingConnection()
    p = Player(1, conn)
    p.inventory.append(weapon(5))
    p.equip(5, 0)
    assert p.inventory == []
    assert p.equipment[0].id == 5
    assert p.attack == 17
    assert kinds(conn) == ["STATS", "INVENTORY", "EQUIPMENT"]
    assert conn.messages[0]["attack"] == 17
    assert conn.messages[2]["items"]["0"]["ID"] == 5


@pytest.mark.parametrize("slot", [-1, 5])
def test_equip_rejects_bad_slot(slot):
    conn = RecordingConnection()
    p = Player(1, conn)
    p.inventory.append(weapon(5))
    p.equip(5, slot)
    assert len(p.inventory) == 1
    assert conn.messages == []


def test_equip_unknown_item_does_nothing():
    p = Player(1)
    p.inventory.append(weapon(5))
    p.equip(99, 0)
    assert p.equipment[0] is None
    assert p.attack == 10


def test_equip_occupied_slot_swaps():
    p = Player(1)
    p.inventory.extend([weapon(1, attack=3), weapon(2, attack=8)])
    p.equip(1, 0)
    p.equip(2, 0)
    assert p.equipment[0].id == 2
    assert [item.id for item in p.inventory] == [1]
    assert p.attack == 18


def test_unequip_returns_item():
    conn = RecordingConnection()
    p = Player(1, conn)
    p.inventory.append(weapon(5))
    p.equip(5, 2)
    conn.messages.clear()
    p.unequip(2)
    assert p.equipment[2] is None
    assert [item.id for item in p.inventory] == [5]
    assert p.attack == 10
    assert kinds(conn) == ["STATS", "INVENTORY", "EQUIPMENT"]
    assert conn.messages[2]["items"] == {}


def test_unequip_empty_slot_sends_nothing():
    conn = RecordingConnection()
    p = Player(1, conn)
    p.unequip(0)
    assert conn.messages == []


def test_only_positive_speed_counts():
    p = Player(1)
    p.inventory.extend([weapon(1, speed=-1.0), weapon(2, speed=2.5)])
    p.equip(1, 0)
    assert p.speed == 5.0
    p.equip(2, 1)
    assert p.speed == 7.5


def test_armor_adds_defense():
    p = Player(1)
    p.inventory.append(Item(id=3, type=ItemType.ARMOR, name="Shield", defense=4))
    p.equip(3, 1)
    assert p.defense == 4


def test_sell_without_game():
    conn = RecordingConnection()
    p = Player(1, conn)
    p.inventory.append(Item(id=7, type=ItemType.WEAPON, attack=3, defense=2, speed=1.5))
    p.sell(7)
    assert p.gold == 40
    assert p.inventory == []
    assert kinds(conn) == ["INVENTORY", "GOLD_UPDATE"]
    assert conn.messages[1]["amount"] == 40


def test_sell_near_shop():
    p = Player(1, game=shop_game())
    p.move(400, 250)
    p.inventory.append(Item(id=7, attack=1))
    p.sell(7)
    assert p.gold == 15


def test_sell_far_from_shop_refused():
    p = Player(1, game=shop_game())
    p.inventory.append(Item(id=7, attack=1))
    p.sell(7)
    assert p.gold == 0
    assert len(p.inventory) == 1


def test_sell_unknown_item():
    p = Player(1)
    p.inventory.append(Item(id=7))
    p.sell(8)
    assert p.gold == 0
    assert len(p.inventory) == 1


def test_send_writes_raw_bytes():
    conn = RecordingConnection()
    p = Player(1, conn)
    p.send(b'{"type":"X"}')
    assert conn.raw == [b'{"type":"X"}']


def test_send_swallows_write_errors():
    conn = FailingConnection()
    p = Player(1, conn)
    p.send(b"{}")
    p.send_inventory()
    assert conn.attempts == 2


def test_str():
    p = Player(3)
    p.move(1.5, 2.0)
    assert str(p) == "Player 3 [1.50, 2.00] Inv: 0"