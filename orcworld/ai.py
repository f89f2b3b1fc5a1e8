"""NPC movement: the collision map, random wandering and path following.

NPC steps use their own direction codes, which differ from player moves:
UP steps left (x - 1), DOWN steps down (y + 1), LEFT steps right (x + 1)
and RIGHT steps up (y - 1).
"""

from __future__ import annotations

import csv
import heapq
import itertools
import logging
import random
from collections.abc import Sequence
from os import PathLike

from .objects import Direction, Npc
from .sector import WorldConfig, _Positioned

log = logging.getLogger(__name__)

COLLISION_SIZE = 100
LEASH = 10

_NPC_STEPS: tuple[tuple[int, int, Direction], ...] = (
    (0, -1, Direction.RIGHT),
    (0, 1, Direction.DOWN),
    (-1, 0, Direction.UP),
    (1, 0, Direction.LEFT),
)
_OFFSETS = {direction: (dx, dy) for dx, dy, direction in _NPC_STEPS}


class CollisionMap:
    """A tile of blocked cells, indexed [x][y] and repeated across the map."""

    def __init__(self, cells: Sequence[Sequence[object]]) -> None:
        columns = tuple(tuple(bool(cell) for cell in column) for column in cells)
        if not columns or not columns[0]:
            raise ValueError("collision map must not be empty")
        if any(len(column) != len(columns[0]) for column in columns):
            raise ValueError("collision map columns must all have the same length")
        self._cells = columns
        self.width = len(columns)
        self.height = len(columns[0])

    @classmethod
    def load_csv(cls, path: str | PathLike[str]) -> CollisionMap:
        """Read a map whose CSV rows are y and columns are x; non-zero blocks."""
        cells = [[False] * COLLISION_SIZE for _ in range(COLLISION_SIZE)]
        with open(path, newline="", encoding="utf-8") as handle:
            rows = list(csv.reader(handle))
        for y, row in enumerate(rows[:COLLISION_SIZE]):
            for x, value in enumerate(row[:COLLISION_SIZE]):
                try:
                    cells[x][y] = int(value.strip()) != 0
                except ValueError:
                    log.warning("bad collision value at (%d, %d): %r", y, x, value)
        return cls(cells)

    def is_blocked(self, x: int, y: int) -> bool:
        return self._cells[x % self.width][y % self.height]


def _may_step(npc: Npc, direction: Direction, config: WorldConfig) -> bool:
    if direction is Direction.UP:
        return npc.x > 0 and npc.x - 1 > npc.sx - LEASH
    if direction is Direction.DOWN:
        return npc.y < config.map_height and npc.y + 1 < npc.sy + LEASH
    if direction is Direction.LEFT:
        return npc.x < config.map_width and npc.x + 1 < npc.sx + LEASH
    return npc.y > 0 and npc.y - 1 > npc.sy - LEASH


def step_npc(npc: Npc, direction: int, collision: CollisionMap, config: WorldConfig) -> bool:
    """Move the NPC one tile if its leash and the map allow; return whether it moved."""
    try:
        direction = Direction(direction)
    except ValueError:
        return False
    if not _may_step(npc, direction, config):
        return False
    dx, dy = _OFFSETS[direction]
    if collision.is_blocked(npc.x + dx, npc.y + dy):
        return False
    npc.x += dx
    npc.y += dy
    return True


def random_move(
    npc: Npc,
    collision: CollisionMap,
    config: WorldConfig,
    rng: random.Random | None = None,
) -> Direction:
    """Try a step in a random direction and return the direction chosen."""
    rng = rng or random.Random()
    direction = Direction(rng.randint(1, 4))
    step_npc(npc, direction, collision, config)
    return direction


def next_step_towards(
    start: tuple[int, int],
    goal: tuple[int, int],
    collision: CollisionMap,
    config: WorldConfig,
) -> Direction | None:
    """First NPC step of a shortest open path from start to goal, or None."""
    start = tuple(start)
    goal = tuple(goal)
    if start == goal:
        return None

    def heuristic(pos: tuple[int, int]) -> int:
        return abs(pos[0] - goal[0]) + abs(pos[1] - goal[1])

    order = itertools.count()
    open_heap = [(heuristic(start), 0, next(order), start)]
    best_cost = {start: 0}
    first_step: dict[tuple[int, int], Direction | None] = {start: None}
    closed: set[tuple[int, int]] = set()

    while open_heap:
        _, cost, _, pos = heapq.heappop(open_heap)
        if pos in closed:
            continue
        if pos == goal:
            return first_step[pos]
        closed.add(pos)
        for dx, dy, direction in _NPC_STEPS:
            nxt = (pos[0] + dx, pos[1] + dy)
            if not (0 <= nxt[0] < config.map_width and 0 <= nxt[1] < config.map_height):
                continue
            if nxt in closed or collision.is_blocked(*nxt):
                continue
            new_cost = cost + 1
            if new_cost >= best_cost.get(nxt, float("inf")):
                continue
            best_cost[nxt] = new_cost
            first_step[nxt] = direction if pos == start else first_step[pos]
            heapq.heappush(open_heap, (new_cost + heuristic(nxt), new_cost, next(order), nxt))
    return None


def follow_move(
    npc: Npc,
    target: _Positioned,
    collision: CollisionMap,
    config: WorldConfig,
) -> Direction:
    """Step the NPC along a path to the target; DOWN when it cannot move."""
    direction = next_step_towards((npc.x, npc.y), (target.x, target.y), collision, config)
    if direction is not None and step_npc(npc, direction, collision, config):
        return direction
    return Direction.DOWN