"""World geometry: sector buckets and range checks between objects."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from .objects import Direction

AGRO_RANGE = 5
SKILL_RANGE = 2


class _Positioned(Protocol):
    x: int
    y: int


@dataclass(frozen=True)
class WorldConfig:
    """Fixed dimensions and limits of a game world."""

    map_width: int = 2000
    map_height: int = 2000
    sector_size: int = 20
    view_range: int = 7
    max_user: int = 10000

    def __post_init__(self) -> None:
        if self.map_width <= 0 or self.map_height <= 0:
            raise ValueError("map dimensions must be positive")
        if self.sector_size <= 0:
            raise ValueError("sector size must be positive")
        if self.view_range < 0:
            raise ValueError("view range must not be negative")
        if self.max_user < 0:
            raise ValueError("max_user must not be negative")


class SectorGrid:
    """Thread-safe buckets of object ids, one per square sector of the map."""

    def __init__(self, config: WorldConfig) -> None:
        self.config = config
        rows = config.map_height // config.sector_size + 1
        cols = config.map_width // config.sector_size + 1
        self._cells: list[list[set[int]]] = [[set() for _ in range(cols)] for _ in range(rows)]
        self._locks = [[threading.Lock() for _ in range(cols)] for _ in range(rows)]

    def index_of(self, x: int, y: int) -> tuple[int, int]:
        """Return the (row, col) of the sector holding the point (x, y)."""
        if not (0 <= x <= self.config.map_width and 0 <= y <= self.config.map_height):
            raise ValueError(f"position ({x}, {y}) is outside the map")
        size = self.config.sector_size
        return y // size, x // size

    def insert(self, object_id: int, x: int, y: int) -> tuple[int, int]:
        row, col = self.index_of(x, y)
        with self._locks[row][col]:
            self._cells[row][col].add(object_id)
        return row, col

    def remove(self, object_id: int, x: int, y: int) -> tuple[int, int]:
        row, col = self.index_of(x, y)
        with self._locks[row][col]:
            self._cells[row][col].discard(object_id)
        return row, col

    def members(self, row: int, col: int) -> frozenset[int]:
        """Return a snapshot of the ids in one sector."""
        with self._locks[row][col]:
            return frozenset(self._cells[row][col])

    def nearby(self, x: int, y: int) -> set[int]:
        """Return the ids in the sector of (x, y) and the sectors around it."""
        row, col = self.index_of(x, y)
        size = self.config.sector_size
        last_row = self.config.map_height // size - 1
        last_col = self.config.map_width // size - 1
        found: set[int] = set()
        for r in range(max(0, row - 1), min(last_row, row + 1) + 1):
            for c in range(max(0, col - 1), min(last_col, col + 1) + 1):
                found |= self.members(r, c)
        return found


def _within(source: _Positioned, target: _Positioned, reach: int) -> bool:
    return abs(source.x - target.x) <= reach and abs(source.y - target.y) <= reach


def can_see(source: _Positioned, target: _Positioned, view_range: int) -> bool:
    """Square field of view around the source."""
    return _within(source, target, view_range)


def can_agro(source: _Positioned, target: _Positioned) -> bool:
    return _within(source, target, AGRO_RANGE)


def can_skill(source: _Positioned, target: _Positioned) -> bool:
    return _within(source, target, SKILL_RANGE)


def can_attack(source: _Positioned, target: _Positioned, direction: int) -> bool:
    """True when the target stands on the tile the source faces."""
    offsets = {
        Direction.DOWN: (0, 1),
        Direction.UP: (0, -1),
        Direction.LEFT: (-1, 0),
        Direction.RIGHT: (1, 0),
    }
    try:
        dx, dy = offsets[Direction(direction)]
    except ValueError:
        return False
    return source.x + dx == target.x and source.y + dy == target.y


def is_pc(object_id: int, max_user: int) -> bool:
    return object_id < max_user


def is_npc(object_id: int, max_user: int) -> bool:
    return not is_pc(object_id, max_user)