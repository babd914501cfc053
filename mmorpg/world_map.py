"""A single game map and the simulation that runs on it."""

from __future__ import annotations

import math
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .protocol import GoldUpdate, ItemRemove, ItemSpawn
from .types import (
    Item,
    ItemType,
    Monster,
    MonsterType,
    NPC,
    Projectile,
    ProjectileType,
)

PROJECTILE_SPEED = 10.0
MONSTER_SPEED = 2.0
MAX_MONSTERS = 10
ITEM_LIFETIME = timedelta(minutes=2)
SHOOT_COOLDOWN = 0.5
SPREAD_STEP = 0.2
MONSTER_COLLISION_DISTANCE = 40.0
COLLECT_RADIUS = 15.0
INVENTORY_LIMIT = 20

_EFFECTIVE = {
    (ProjectileType.FIRE, MonsterType.GRASS),
    (ProjectileType.WATER, MonsterType.FIRE),
    (ProjectileType.GRASS, MonsterType.WATER),
}
_NOT_EFFECTIVE = {
    (ProjectileType.FIRE, MonsterType.WATER),
    (ProjectileType.WATER, MonsterType.GRASS),
    (ProjectileType.GRASS, MonsterType.FIRE),
}


@dataclass
class Portal:
    """A circular area that moves a player onto another map."""

    x: float
    y: float
    radius: float
    target_map: "WorldMap"
    target_x: float
    target_y: float


class WorldMap:
    """Items, monsters, NPCs, projectiles and portals of one map."""

    def __init__(self, map_id, *, width=800.0, height=600.0, rng=None):
        self.id = map_id
        self.items: dict[int, Item] = {}
        self.monsters: dict[int, Monster] = {}
        self.npcs: dict[int, NPC] = {}
        self.projectiles: dict[int, Projectile] = {}
        self.portals: list[Portal] = []
        self.width = width
        self.height = height
        self._last_item_id = 0
        self._last_monster_id = 0
        self._last_projectile_id = 0
        self._rng = rng if rng is not None else random.Random()
        self._lock = threading.Lock()

    def __repr__(self):
        return f"WorldMap({self.id!r})"

    def update_projectiles(self):
        """Advance projectiles and drop those that left the map."""
        with self._lock:
            for pid, proj in list(self.projectiles.items()):
                proj.x += proj.vx * PROJECTILE_SPEED
                proj.y += proj.vy * PROJECTILE_SPEED
                if (
                    proj.x < -50
                    or proj.x > self.width + 50
                    or proj.y < -50
                    or proj.y > self.height + 50
                ):
                    del self.projectiles[pid]

    def update_items(self, players):
        """Remove items that have lain on the ground too long."""
        with self._lock:
            now = datetime.now(timezone.utc)
            expired = [
                iid for iid, item in self.items.items() if now - item.created_at > ITEM_LIFETIME
            ]
            for iid in expired:
                del self.items[iid]
                self._broadcast(ItemRemove(id=iid), players)

    def update_player_shooting(self, players):
        """Let each ready player fire at the nearest monster."""
        with self._lock:
            now = time.monotonic()
            for player in players:
                if now - player.last_shoot <= SHOOT_COOLDOWN or not self.monsters:
                    continue
                target = min(
                    self.monsters.values(),
                    key=lambda mon: (mon.x - player.x) ** 2 + (mon.y - player.y) ** 2,
                )
                vx, vy = player.dir_x, player.dir_y
                dx = target.x - player.x
                dy = target.y - player.y
                length = math.sqrt(dx * dx + dy * dy)
                if length > 0:
                    vx, vy = dx / length, dy / length

                player.last_shoot = now

                kinds = [ProjectileType.DEFAULT] + [
                    item.projectile_type
                    for item in player.equipment
                    if item is not None and item.type == ItemType.WEAPON
                ]
                start_angle = -(len(kinds) - 1) * SPREAD_STEP / 2.0
                for offset, kind in enumerate(kinds):
                    angle = start_angle + offset * SPREAD_STEP
                    self._last_projectile_id += 1
                    proj = Projectile(
                        id=self._last_projectile_id,
                        owner_id=player.id,
                        x=player.x,
                        y=player.y,
                        vx=vx * math.cos(angle) - vy * math.sin(angle),
                        vy=vx * math.sin(angle) + vy * math.cos(angle),
                        type=kind,
                    )
                    self.projectiles[proj.id] = proj

    def spawn_monster(self):
        """Add a random monster unless the map is full."""
        with self._lock:
            if len(self.monsters) >= MAX_MONSTERS:
                return
            self._last_monster_id += 1
            monster = Monster(
                id=self._last_monster_id,
                x=50 + self._rng.random() * (self.width - 100),
                y=50 + self._rng.random() * (self.height - 100),
                type=MonsterType(self._rng.randrange(3)),
                hp=50,
                max_hp=50,
            )
            self.monsters[monster.id] = monster

    def update_monsters(self, players):
        """Move monsters towards the nearest player, keeping them apart."""
        with self._lock:
            for monster in self.monsters.values():
                vx = vy = 0.0
                if players:
                    target = min(
                        players,
                        key=lambda p: (p.x - monster.x) ** 2 + (p.y - monster.y) ** 2,
                    )
                    dx = target.x - monster.x
                    dy = target.y - monster.y
                    dist = math.sqrt(dx * dx + dy * dy)
                    if dist > MONSTER_SPEED:
                        vx = dx / dist * MONSTER_SPEED
                        vy = dy / dist * MONSTER_SPEED

                for other in self.monsters.values():
                    if other is monster:
                        continue
                    dx = monster.x - other.x
                    dy = monster.y - other.y
                    dist_sq = dx * dx + dy * dy
                    if 0 < dist_sq < MONSTER_COLLISION_DISTANCE**2:
                        dist = math.sqrt(dist_sq)
                        push = (MONSTER_COLLISION_DISTANCE - dist) / dist
                        vx += dx * push * 0.1
                        vy += dy * push * 0.1

                monster.x += vx
                monster.y += vy

    def check_collisions(self, players):
        """Resolve projectile hits on monsters and item pickups."""
        with self._lock:
            by_id = {p.id: p for p in players}
            spent: set[int] = set()
            killed: list[int] = []

            for pid, proj in self.projectiles.items():
                hit_radius = 40.0 if proj.type == ProjectileType.GRASS else 20.0
                for mid, monster in self.monsters.items():
                    dx = proj.x - monster.x
                    dy = proj.y - monster.y
                    if dx * dx + dy * dy >= hit_radius * hit_radius:
                        continue
                    spent.add(pid)
                    damage = 10
                    owner = by_id.get(proj.owner_id)
                    if owner is not None:
                        damage = owner.attack
                        matchup = (proj.type, monster.type)
                        if matchup in _EFFECTIVE:
                            # Effective hits are doubled twice.
                            damage *= 4
                        elif matchup in _NOT_EFFECTIVE:
                            damage = int(damage / 2)
                    monster.hp -= damage
                    if monster.hp <= 0:
                        killed.append(mid)
                        self._spawn_item_at(monster.x, monster.y, players)
                    break

            for pid in spent:
                del self.projectiles[pid]
            for mid in killed:
                self.monsters.pop(mid, None)

            for player in players:
                for item in list(self.items.values()):
                    dx = player.x - item.x
                    dy = player.y - item.y
                    if dx * dx + dy * dy < COLLECT_RADIUS * COLLECT_RADIUS:
                        self._collect_item(player, item, players)

    def add_projectile(self, projectile):
        """Place a projectile on the map."""
        with self._lock:
            self.projectiles[projectile.id] = projectile

    def _spawn_item_at(self, x, y, players):
        self._last_item_id += 1
        roll = self._rng.random()
        attack = defense = 0
        projectile_type = ProjectileType.DEFAULT
        if roll < 0.5:
            kind, name = ItemType.GOLD, "Gold"
        elif roll < 0.75:
            kind, name = ItemType.WEAPON, "Sword"
            attack = 5 + self._rng.randrange(10)
            projectile_type = ProjectileType(1 + self._rng.randrange(3))
        else:
            kind, name = ItemType.ARMOR, "Shield"
            defense = 2 + self._rng.randrange(5)

        item = Item(
            id=self._last_item_id,
            type=kind,
            name=name,
            x=x,
            y=y,
            created_at=datetime.now(timezone.utc),
            attack=attack,
            defense=defense,
            projectile_type=projectile_type,
        )
        self.items[item.id] = item
        self._broadcast(ItemSpawn(id=item.id, item_type=int(kind), x=x, y=y), players)

    def _collect_item(self, player, item, players):
        if item.type != ItemType.GOLD and len(player.inventory) >= INVENTORY_LIMIT:
            return
        self.items.pop(item.id, None)
        if item.type == ItemType.GOLD:
            player.gold += 100
            player.send_json(GoldUpdate(amount=player.gold))
        else:
            player.inventory.append(item)
            player.send_inventory()
        self._broadcast(ItemRemove(id=item.id), players)

    @staticmethod
    def _broadcast(message, players):
        for player in players:
            player.send_json(message)