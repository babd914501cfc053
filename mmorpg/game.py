"""The game world: players, maps, the market and the simulation loop."""

from __future__ import annotations

import logging
import random
import threading
import time
from datetime import datetime, timezone

from .player import Player
from .protocol import (
    Entity,
    GoldUpdate,
    ItemSpawn,
    Leave,
    MapSwitch,
    MarketUpdate,
    PortalData,
    Snap,
    Welcome,
    encode,
)
from .types import NPC, Item, ItemType, MarketItem, NPCType, ProjectileType
from .world_map import Portal, WorldMap

log = logging.getLogger(__name__)

TICK_INTERVAL = 0.033
SPAWN_INTERVAL = 1.0
PORTAL_COOLDOWN = 2.0
STARTER_ITEMS = 20


class Game:
    """All players and maps, and the loop that drives them."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng if rng is not None else random.Random()
        self.players: dict[int, Player] = {}
        self.maps: dict[str, WorldMap] = {}
        self.market: dict[int, MarketItem] = {}
        self._lock = threading.RLock()
        self._last_id = 0
        self._last_market_id = 0
        self._quit = threading.Event()

        town = WorldMap("town", rng=self._rng)
        field = WorldMap("field", rng=self._rng)
        dungeon = WorldMap("dungeon", rng=self._rng)
        for world_map in (town, field, dungeon):
            self.maps[world_map.id] = world_map

        town.npcs[1] = NPC(id=1, x=400, y=200, type=NPCType.SHOP, name="Shopkeeper")
        town.npcs[2] = NPC(id=2, x=500, y=200, type=NPCType.MARKET, name="Market Manager")

        town.portals.append(Portal(750, 300, 30, field, 50, 300))
        field.portals.extend(
            [
                Portal(50, 300, 30, town, 750, 300),
                Portal(750, 300, 30, dungeon, 50, 300),
            ]
        )
        dungeon.portals.append(Portal(50, 300, 30, field, 750, 300))

    def start(self) -> None:
        """Run the simulation until stop() is called."""
        now = time.monotonic()
        next_tick = now + TICK_INTERVAL
        next_spawn = now + SPAWN_INTERVAL
        while True:
            timeout = max(0.0, min(next_tick, next_spawn) - time.monotonic())
            if self._quit.wait(timeout):
                return
            now = time.monotonic()
            if now >= next_tick:
                self.update()
                next_tick += TICK_INTERVAL
                if next_tick < now:
                    next_tick = now + TICK_INTERVAL
            if now >= next_spawn:
                self.spawn_monsters()
                next_spawn += SPAWN_INTERVAL
                if next_spawn < now:
                    next_spawn = now + SPAWN_INTERVAL

    def stop(self) -> None:
        """Ask a running start() loop to return."""
        self._quit.set()

    def spawn_monsters(self) -> None:
        """Spawn one monster on every map except the town."""
        for world_map in self.maps.values():
            if world_map.id != "town":
                world_map.spawn_monster()

    def update(self) -> None:
        """Advance the world one tick and send each map's players a snapshot."""
        with self._lock:
            by_map: dict[str, list[Player]] = {}
            for player in self.players.values():
                self._check_portal_collisions(player)
                by_map.setdefault(player.map_id, []).append(player)

            if not self.players:
                return

            for map_id, world_map in self.maps.items():
                present = by_map.get(map_id, [])
                if not present and not world_map.projectiles and not world_map.monsters:
                    continue

                world_map.update_projectiles()
                world_map.update_monsters(present)
                world_map.update_items(present)
                world_map.update_player_shooting(present)
                world_map.check_collisions(present)

                snap = Snap(
                    players=[Entity(id=p.id, x=p.x, y=p.y) for p in present],
                    monsters=[
                        Entity(
                            id=mon.id,
                            x=mon.x,
                            y=mon.y,
                            type=int(mon.type),
                            hp=mon.hp,
                            max_hp=mon.max_hp,
                        )
                        for mon in world_map.monsters.values()
                    ],
                    projectiles=[
                        Entity(id=proj.id, x=proj.x, y=proj.y, type=int(proj.type))
                        for proj in world_map.projectiles.values()
                    ],
                    npcs=[
                        Entity(id=npc.id, x=npc.x, y=npc.y, type=int(npc.type))
                        for npc in world_map.npcs.values()
                    ],
                )
                try:
                    data = encode(snap)
                except ValueError:
                    continue
                for player in present:
                    player.send(data)

    def _check_portal_collisions(self, player: Player) -> None:
        if time.monotonic() - player.last_portal_use < PORTAL_COOLDOWN:
            return
        world_map = self.maps.get(player.map_id)
        if world_map is None:
            return
        for portal in world_map.portals:
            dx = player.x - portal.x
            dy = player.y - portal.y
            if dx * dx + dy * dy < portal.radius * portal.radius:
                self._switch_map(player, portal.target_map.id, portal.target_x, portal.target_y)
                return

    @staticmethod
    def _portal_data(world_map: WorldMap | None) -> list[PortalData] | None:
        if world_map is None or not world_map.portals:
            return None
        return [
            PortalData(x=p.x, y=p.y, radius=p.radius, target=p.target_map.id)
            for p in world_map.portals
        ]

    @staticmethod
    def _send_items(player: Player, world_map: WorldMap) -> None:
        for item in world_map.items.values():
            player.send_json(ItemSpawn(id=item.id, item_type=int(item.type), x=item.x, y=item.y))

    def _switch_map(self, player: Player, target_map: str, x: float, y: float) -> None:
        player.map_id = target_map
        player.x = x
        player.y = y
        player.last_portal_use = time.monotonic()

        world_map = self.maps.get(target_map)
        player.send_json(
            MapSwitch(map=target_map, x=x, y=y, portals=self._portal_data(world_map))
        )
        if world_map is not None:
            self._send_items(player, world_map)

    def _starter_item(self, index: int) -> Item:
        if index < 10:
            return Item(
                id=-1000 - index,
                type=ItemType.WEAPON,
                name=f"Test Sword {index}",
                attack=10 + index,
                projectile_type=ProjectileType(1 + self._rng.randrange(3)),
            )
        return Item(
            id=-1000 - index,
            type=ItemType.ARMOR,
            name=f"Test Shield {index}",
            defense=5 + (index - 10),
        )

    def add_player(self, conn) -> Player:
        """Register a new player on a connection and send them the world state."""
        with self._lock:
            self._last_id += 1
            player = Player(self._last_id, conn, game=self)
            self.players[player.id] = player
            log.info("Player joined: %d", player.id)

            player.inventory.extend(self._starter_item(i) for i in range(STARTER_ITEMS))
            player.send_inventory()

            player.send_json(
                Welcome(
                    id=player.id,
                    hp=player.hp,
                    max_hp=player.max_hp,
                    attack=player.attack,
                    defense=player.defense,
                    speed=player.speed,
                    gold=player.gold,
                )
            )

            world_map = self.maps.get(player.map_id)
            if world_map is not None:
                player.send_json(
                    MapSwitch(
                        map=player.map_id,
                        x=player.x,
                        y=player.y,
                        portals=self._portal_data(world_map),
                    )
                )
                self._send_items(player, world_map)

            player.send_json(self._market_message())
            return player

    def remove_player(self, player_id: int) -> None:
        """Forget a player and tell everyone else they left."""
        with self._lock:
            self.players.pop(player_id, None)
            log.info("Player left: %d", player_id)
            self._broadcast(Leave(id=player_id))

    def _broadcast(self, message) -> None:
        try:
            data = encode(message)
        except ValueError:
            return
        for player in self.players.values():
            player.send(data)

    def _market_message(self) -> MarketUpdate:
        return MarketUpdate(items=list(self.market.values()) or None)

    def list_market_item(self, player: Player, item_id: int, price: int) -> None:
        """Move an item from a player's inventory onto the market."""
        if price <= 0:
            return
        with self._lock:
            index = next(
                (i for i, item in enumerate(player.inventory) if item.id == item_id),
                None,
            )
            if index is None:
                return
            item = player.inventory.pop(index)
            self._last_market_id += 1
            listing = MarketItem(
                id=self._last_market_id,
                seller_id=player.id,
                seller_name=f"Player {player.id}",
                item=item,
                price=price,
                created_at=datetime.now(timezone.utc),
            )
            self.market[listing.id] = listing
            player.send_inventory()
            self._broadcast(self._market_message())

    def buy_market_item(self, buyer: Player, market_id: int) -> None:
        """Buy a listing, or take it back if the buyer is its seller."""
        with self._lock:
            listing = self.market.get(market_id)
            if listing is None:
                return

            if listing.seller_id == buyer.id:
                del self.market[market_id]
                buyer.inventory.append(listing.item)
                buyer.send_inventory()
                self._broadcast(self._market_message())
                return

            if buyer.gold < listing.price:
                return

            buyer.gold -= listing.price
            seller = self.players.get(listing.seller_id)
            if seller is not None:
                seller.gold += listing.price
                seller.send_json(GoldUpdate(amount=seller.gold))

            buyer.inventory.append(listing.item)
            del self.market[market_id]

            buyer.send_json(GoldUpdate(amount=buyer.gold))
            buyer.send_inventory()
            self._broadcast(self._market_message())

    def send_market(self, player: Player) -> None:
        """Send the current market listings to one player."""
        with self._lock:
            player.send_json(self._market_message())