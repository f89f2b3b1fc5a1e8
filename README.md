# orcworld

This package holds the game-world logic of a small tile-based online role-playing
game. The player is an orc. The map holds villagers and warriors, and both react
when the orc comes near.

The package contains the rules of the world and nothing else. Messages for a
player are queued on its `User`, and the caller collects them with
`User.drain()`.

## Modules

- `orcworld.sector`
  - `WorldConfig` holds the map width and height, the sector size, the view range
    and `max_user`. Object ids below `max_user` belong to players.
  - `SectorGrid` sorts object ids into square sectors. It has `index_of`,
    `insert`, `remove`, `members` and `nearby`. `nearby` searches the sector of a
    point and the sectors around it.
  - The range checks are `can_see`, `can_agro`, `can_attack` and `can_skill`.
    `is_pc` and `is_npc` tell players and NPCs apart by their ids.
- `orcworld.objects`
  - `GameObject`, `User` and `Npc`, and the enums `State`, `Direction` and
    `ObjectType`.
  - `Npc.try_activate()` and `Npc.deactivate()` guard an NPC's active flag.
  - `has_special_char(name)` rejects login names that hold anything other than
    ASCII letters and digits.
- `orcworld.messages`
  - The messages sent to players: `Move`, `Leave`, `StatChange`, `StateChange`,
    `LoginFail`, `AvatarInfo`, `Enter` and `Chat`.
  - `Completion` is a unit of work, and `CompletionType` says which kind it is.
  - `UserRecord` is a stored player row. Its `uid` may be at most 19 characters
    long.
- `orcworld.timers`
  - A `TimerEvent` has a `TimerKind`.
  - `TimerQueue` is thread-safe. `push` adds an event. `pop_due(now)` returns the
    events that are due, earliest first.
- `orcworld.ai`
  - `CollisionMap` is a tile of blocked cells that repeats across the map. It can
    be built from a list of columns or read with `CollisionMap.load_csv(path)`.
  - `step_npc` moves an NPC one tile. `random_move` wanders at random, staying
    within 10 tiles of the NPC's spawn point. `follow_move` steps along an A*
    path, which `next_step_towards` computes.
- `orcworld.world`
  - `World` is the object table, together with its sector grid, timer queue and
    queue of pending completions.
  - It allocates player slots (`connect`, `new_client_id`) and handles
    `disconnect`.
  - It keeps view lists up to date (`load_view_list`, `update_view_list`) and
    broadcasts changes to the players who can see them (`update_animation`,
    `update_chat`, `update_leave`, `update_add`, `update_move`).
  - It spawns NPCs on open cells with `init_npcs(humans)`.
- `orcworld.game`
  - `Game` handles player requests: `login`, `move`, `change_state`, `chat`,
    `attack`, `use_skill` and `update_attack`.
  - It handles storage results with `load_user` and `new_user`.
  - It runs the worker loop with `handle(completion)` and `run_timers(now)`.

## Rules in brief

- Views are square. An object sees everything within the view range on both
  axes.
- **Villagers:** a villager that is attacked for the first time pleads for its
  life and starts to wander at random.
- **Warriors:** a warrior that comes within five tiles of a player shouts and
  gives chase.
- **The orc NPC** answers a player who comes into view with a greeting. It
  cannot be damaged.
- **Attacks:**
  - A plain attack hits the one tile that the player faces.
  - The attack skill hits every NPC within two tiles.
  - The heal skill gives 20 HP to every other player within two tiles, up to
    their maximum HP.
- **Cooldowns:** plain attacks have a cooldown of 1 second. Both skills have a
  cooldown of 3 seconds.
- **Respawns:** defeated NPCs respawn after 30 seconds. Players who die respawn
  at the spawn point after 5 seconds and lose half their experience.
- **Healing:** every 5 seconds, a healing tick restores 10 % of a player's
  maximum HP. The ticks go on until the player is back at full HP.

## Using it

```python
import random

from orcworld.ai import CollisionMap
from orcworld.game import Game
from orcworld.sector import WorldConfig
from orcworld.timers import TimerQueue
from orcworld.world import World

collision = CollisionMap.load_csv("collision_data_small.csv")
world = World(WorldConfig(), collision, random.Random())
world.init_npcs(humans=100)
game = Game(world, TimerQueue())

user = world.connect()
if game.login(user.id, "orc01"):
    game.new_user(user.id)  # or game.load_user(user.id, record)
print(user.drain())
```

Pass client requests to the `Game` methods. Call `game.run_timers(now)`
regularly, with `now` taken from `world.clock` (by default `time.monotonic`).
It runs the timers that are due and all pending work, and returns the
completions it handled.

## What this package does not do

- **No networking.** It has no server, no socket handling and no packet
  encoding. Whatever carries messages to and from clients must turn client
  requests into calls on `Game`, and send what `User.drain()` returns.
- **No storage.** `Game` appends requests such as `("load_info", user_id)` or
  `("save_hp", user_id)` to `Game.db_requests`, but nothing in the package
  carries them out. The caller answers a login by calling `load_user` with a
  `UserRecord`, or `new_user` for an account that is not stored. It can also
  hand `Game.handle` a `Completion` of type `DB_LOAD_USER` or `DB_NEW_USER`.
- **No command to start a server.** The package is a library only.

## Tests

The tests use pytest and live in `tests/`. The `test` extra installs what they
need:

```
pip install -e ".[test]"
pytest
```