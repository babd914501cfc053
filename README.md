# mmorpg

A compact server for a real-time multiplayer role-playing game. Players
connect over a line-based TCP socket or a WebSocket, walk between three
linked maps (`town`, `field` and `dungeon`), automatically shoot at the
nearest monster, pick up loot, equip weapons and armour, sell items to the
shopkeeper in town and trade with each other on a shared market.

## What the game does

- **Joining.** A new player starts in `town` at (400, 300) with 100 HP,
  attack 10, defence 0, speed 5 and no gold. Their inventory is filled with
  twenty starter items: ten swords with a random elemental projectile type
  and ten shields.
- **Maps and portals.** Standing inside a portal moves the player to the
  linked map; a player cannot use a portal again for two seconds.
- **Monsters.** While `Game.start` runs, once a second every map except
  `town` spawns a monster, up to ten per map. Monsters move towards the
  nearest player on their map and push each other apart.
- **Combat.** When there is a monster on the map, a player fires at the
  nearest one at most every half second: one default projectile plus one per
  equipped weapon, fanned out in a spread. A hit deals the player's attack.
  Fire beats grass, water beats fire and grass beats water (four times the
  damage); the reverse match-ups deal half.
- **Loot.** A slain monster drops gold (half the time), a sword or a shield.
  Walking over gold adds 100 to the player's purse; other items go into the
  inventory, which holds at most 20 items. Items left on the ground vanish
  after two minutes.
- **Equipment.** Five slots. Equipped items add to attack, defence and speed.
- **Shop and market.** Standing within 100 units of the shopkeeper, a player
  can sell an item for `10 + (attack + defence + speed) * 5` gold. Items can
  also be listed on the market at any positive price and bought by anyone
  with enough gold; a seller who buys back their own listing gets the item
  back for free.

The world advances about thirty times a second (`Game.update`); after each
step every player receives a `SNAP` message with the players, monsters,
projectiles and NPCs of their current map.

## Protocol

Every message is a JSON object with a `type` field: one per line on TCP, one
per text frame on WebSocket.

Client to server:

| type          | fields              |
|---------------|---------------------|
| `MOVE`        | `x`, `y`            |
| `EQUIP`       | `item_id`, `slot`   |
| `UNEQUIP`     | `slot`              |
| `SELL`        | `item_id`           |
| `MARKET_LIST` | `item_id`, `price`  |
| `MARKET_BUY`  | `market_id`         |

Server to client: `WELCOME`, `STATS`, `SNAP`, `MAP_SWITCH`, `ITEM_SPAWN`,
`ITEM_REMOVE`, `GOLD_UPDATE`, `INVENTORY`, `EQUIPMENT`, `MARKET_UPDATE` and
`LEAVE`. The message classes live in `mmorpg.protocol`, and
`mmorpg.protocol.encode` turns one into compact JSON bytes.

Anything that is not a JSON object with a known `type`, or whose fields have
the wrong types, is ignored.

## Using it from Python

The game state lives in `mmorpg.game.Game`. Commands from a client are
applied with `mmorpg.handler.handle_command`:

```python
from mmorpg.game import Game
from mmorpg.handler import handle_command

game = Game()
player = game.add_player(None)   # a player without a connection

handle_command(player, '{"type": "MOVE", "x": 10.5, "y": 20.0}')
assert (player.x, player.y) == (10.5, 20.0)

game.update()                    # advance the world by one step
game.remove_player(player.id)
```

`Game` accepts a `random.Random` instance (`Game(rng=...)`) for reproducible
spawns and loot.

## Serving clients

`Game.start` runs the world loop until `Game.stop` is called. Serve the game
over TCP with `mmorpg.server.Server`, which takes a `"host:port"` address:

```python
import threading

from mmorpg.game import Game
from mmorpg.server import Server

game = Game()
threading.Thread(target=game.start, daemon=True).start()

server = Server("127.0.0.1:9000", game)
server.start()   # blocks until server.stop() is called from another thread
```

After binding, `server.address` holds the actual host and port, which is
useful with port `0`. Lines longer than 64 KiB end the connection.

For WebSocket clients, use `mmorpg.ws_server.WSServer`:

```python
import asyncio

from mmorpg.ws_server import WSServer

asyncio.run(WSServer(game).serve("0.0.0.0", 8080))
```

Each connection becomes a player for as long as it stays open. Joins, leaves
and connection errors are reported through the standard `logging` module.

## What it does not do

- There is no command-line program; start the game and a server from your
  own Python code as shown above.
- All state is kept in memory: players, inventories and the market are lost
  when the process ends, and a player's items disappear when they disconnect.
- There are no accounts or authentication, and no game client.