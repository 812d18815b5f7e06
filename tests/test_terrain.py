"""
Tests for the terrain grid and grid algorithms.

Run with: python -m pytest tests/test_terrain.py
"""

import math

import numpy as np
import pytest

from planner.errors import OutOfBounds
from planner.terrain import (
    UNREACHED,
    Location,
    Terrain,
    TerrainGrid,
    distance_at,
    distance_transform,
    flood_fill,
)


def _rows_with(cells, code):
    rows = [[0] * 50 for _ in range(50)]
    for x, y in cells:
        rows[y][x] = code
    return rows


def test_location_ordering_is_row_major():
    locs = [Location(3, 1), Location(0, 2), Location(49, 0), Location(1, 1)]
    assert sorted(locs) == [Location(49, 0), Location(1, 1), Location(3, 1), Location(0, 2)]


def test_location_pack_round_trip():
    loc = Location(17, 42)
    assert loc.pack() == (17 << 8) | 42
    assert Location.unpack(loc.pack()) == loc
    assert Location.from_index(loc.index) == loc


def test_location_from_any():
    assert Location.from_any([3, 4]) == Location(3, 4)
    assert Location.from_any({"x": 3, "y": 4}) == Location(3, 4)
    assert Location.from_any(Location(3, 4).pack()) == Location(3, 4)


def test_neighbors_at_corner_and_center():
    assert len(Location(0, 0).neighbors()) == 3
    assert len(Location(25, 25).neighbors()) == 8
    # Row-major order
    assert Location(25, 25).neighbors()[0] == Location(24, 24)


def test_chebyshev_distance():
    assert Location(0, 0).distance_to(Location(3, 4)) == 4
    assert Location(5, 5).distance_to(Location(5, 5)) == 0


def test_interior_excludes_build_border():
    assert Location(2, 2).is_interior()
    assert Location(47, 47).is_interior()
    assert not Location(1, 20).is_interior()
    assert not Location(20, 48).is_interior()


def test_terrain_codes_normalized():
    rows = _rows_with([(5, 5)], 3)
    rows[6][5] = 2
    grid = TerrainGrid.from_rows(rows)
    # Wall and swamp together count as wall
    assert grid.terrain_at(Location(5, 5)) == Terrain.WALL
    assert grid.is_swamp(Location(5, 6))
    assert grid.is_walkable(Location(5, 6))


def test_terrain_wrong_shape_rejected():
    with pytest.raises(ValueError):
        TerrainGrid([[0] * 10] * 10)
    with pytest.raises(ValueError):
        TerrainGrid.from_string("0" * 100)


def test_out_of_bounds_query_raises():
    grid = TerrainGrid.plain()
    with pytest.raises(OutOfBounds) as exc:
        grid.is_walkable(Location(50, 3))
    assert exc.value.kind == "OutOfBounds"
    assert grid.in_bounds(Location(49, 49))
    assert not grid.in_bounds(Location(-1, 0))


def test_movement_cost():
    rows = _rows_with([(1, 1)], 1)
    rows[2][2] = 2
    grid = TerrainGrid.from_rows(rows, swamp_cost=5)
    assert grid.movement_cost(Location(0, 0)) == 1
    assert grid.movement_cost(Location(2, 2)) == 5
    assert math.isinf(grid.movement_cost(Location(1, 1)))


def test_walkable_mask_is_read_only():
    grid = TerrainGrid.plain()
    with pytest.raises(ValueError):
        grid.walkable_mask[0, 0] = False


def test_plain_room_exits():
    grid = TerrainGrid.plain()
    assert len(grid.exits()) == 196


def test_from_string_matches_rows():
    grid = TerrainGrid.from_rows(_rows_with([(7, 3)], 1))
    again = TerrainGrid.from_string("".join(grid.to_rows()))
    assert np.array_equal(grid.codes, again.codes)


def test_distance_transform_plain():
    dist = distance_transform(TerrainGrid.plain())
    assert dist[0, 0] == 0
    assert dist[1, 1] == 1
    assert dist[25, 25] == 24
    assert dist[10, 25] == 10


def test_distance_transform_near_wall():
    grid = TerrainGrid.from_rows(_rows_with([(20, 20)], 1))
    dist = distance_transform(grid)
    assert dist[20, 20] == 0
    assert dist[21, 21] == 1
    assert dist[20, 23] == 3


def test_flood_fill_distances():
    dist = flood_fill(TerrainGrid.plain(), [Location(10, 10)])
    assert distance_at(dist, Location(10, 10)) == 0
    assert distance_at(dist, Location(15, 10)) == 5
    assert distance_at(dist, Location(13, 17)) == 7
    assert distance_at(dist, Location(60, 0)) == UNREACHED


def test_flood_fill_stops_at_wall_column():
    grid = TerrainGrid.from_rows(_rows_with([(20, y) for y in range(50)], 1))
    dist = flood_fill(grid, [Location(10, 10)])
    assert dist[10, 25] == UNREACHED
    assert dist[10, 19] == 9


def test_flood_fill_blocked_and_max_distance():
    dist = flood_fill(
        TerrainGrid.plain(), [Location(10, 10)],
        blocked={Location(11, 10)}, max_distance=3,
    )
    assert dist[10, 11] == UNREACHED
    assert dist[10, 12] == 2
    assert dist[10, 14] == UNREACHED
