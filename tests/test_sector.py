from types import SimpleNamespace

import pytest

from orcworld.objects import Direction
from orcworld.sector import (
    SectorGrid,
    WorldConfig,
    can_agro,
    can_attack,
    can_see,
    can_skill,
    is_npc,
    is_pc,
)


def at(x, y):
    return SimpleNamespace(x=x, y=y)


@pytest.fixture
def grid():
    return SectorGrid(WorldConfig(map_width=100, map_height=100, sector_size=20, max_user=10))


def test_index_of_puts_row_from_y(grid):
    assert grid.index_of(45, 5) == (0, 2)
    assert grid.index_of(5, 45) == (2, 0)


def test_index_of_rejects_outside(grid):
    with pytest.raises(ValueError):
        grid.index_of(-1, 0)
    with pytest.raises(ValueError):
        grid.index_of(0, 101)


def test_insert_and_remove(grid):
    index = grid.insert(7, 25, 45)
    assert index == grid.index_of(25, 45)
    assert 7 in grid.members(*index)
    assert grid.remove(7, 25, 45) == index
    assert 7 not in grid.members(*index)


def test_remove_missing_is_harmless(grid):
    grid.remove(99, 0, 0)
    assert grid.members(0, 0) == frozenset()


def test_members_is_snapshot(grid):
    grid.insert(1, 5, 5)
    snapshot = grid.members(0, 0)
    grid.insert(2, 6, 6)
    assert snapshot == frozenset({1})


@pytest.mark.parametrize("kwargs", [{"map_width": 0}, {"sector_size": 0}, {"view_range": -1}])
def test_config_validation(kwargs):
    with pytest.raises(ValueError):
        WorldConfig(**kwargs)


def test_can_see_square_range():
    assert can_see(at(10, 10), at(17, 3), 7)
    assert not can_see(at(10, 10), at(18, 10), 7)


def test_agro_and_skill_ranges():
    assert can_agro(at(0, 0), at(5, 5))
    assert not can_agro(at(0, 0), at(6, 0))
    assert can_skill(at(0, 0), at(2, 2))
    assert not can_skill(at(0, 0), at(0, 3))


@pytest.mark.parametrize(
    "direction, target",
    [
        (Direction.DOWN, (5, 6)),
        (Direction.UP, (5, 4)),
        (Direction.LEFT, (4, 5)),
        (Direction.RIGHT, (6, 5)),
    ],
)
def test_can_attack_faced_tile(direction, target):
    assert can_attack(at(5, 5), at(*target), direction)
    assert not can_attack(at(5, 5), at(5, 5), direction)


def test_can_attack_unknown_direction():
    assert not can_attack(at(5, 5), at(5, 6), 0)


def test_pc_npc_split():
    assert is_pc(9, 10) and not is_npc(9, 10)
    assert is_npc(10, 10) and not is_pc(10, 10)