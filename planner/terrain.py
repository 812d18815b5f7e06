"""
Terrain and accessibility grid.

This module wraps the raw per-tile terrain of a room into queryable masks and
provides the two grid algorithms every later stage leans on: a Chebyshev
distance transform and an 8-way breadth-first flood fill.

Coordinates are (x, y) with 0 <= x, y < ROOM_SIZE. Arrays are indexed
``[y, x]`` so that a flattened array walks tiles in row-major order.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import math
from collections import deque
from dataclasses import dataclass
from enum import IntEnum
from functools import total_ordering
from typing import Callable, Iterable, List, Optional, Set, Union

import numpy as np
from scipy import ndimage

from .errors import OutOfBounds

# =========================
# Module Constants
# =========================

ROOM_SIZE = 50

# Outer ring where no non-road structure may be placed
BUILD_BORDER = 2

# Road planning costs
PLAIN_COST = 1
SWAMP_COST = 3

# Neighbour offsets in row-major order so iteration stays deterministic
NEIGHBOR_OFFSETS = [
    (-1, -1), (0, -1), (1, -1),
    (-1, 0), (1, 0),
    (-1, 1), (0, 1), (1, 1),
]

UNREACHED = -1


class Terrain(IntEnum):
    """Per-tile terrain classification."""

    PLAIN = 0
    WALL = 1
    SWAMP = 2


# =========================
# Location
# =========================

@total_ordering
@dataclass(frozen=True)
class Location:
    """A tile coordinate, ordered by row-major index."""

    x: int
    y: int

    @property
    def index(self) -> int:
        return self.y * ROOM_SIZE + self.x

    def __lt__(self, other):
        if not isinstance(other, Location):
            return NotImplemented
        return self.index < other.index

    def __repr__(self) -> str:
        return f"Location({self.x}, {self.y})"

    @classmethod
    def from_index(cls, index: int) -> "Location":
        return cls(index % ROOM_SIZE, index // ROOM_SIZE)

    def pack(self) -> int:
        """Pack into a single int (``x << 8 | y``) for compact storage."""
        return (self.x << 8) | self.y

    @classmethod
    def unpack(cls, packed: int) -> "Location":
        return cls((packed >> 8) & 0xFF, packed & 0xFF)

    def in_room(self) -> bool:
        return 0 <= self.x < ROOM_SIZE and 0 <= self.y < ROOM_SIZE

    def is_edge(self) -> bool:
        last = ROOM_SIZE - 1
        return self.x in (0, last) or self.y in (0, last)

    def is_interior(self) -> bool:
        """True when the tile lies inside the build border."""
        low = BUILD_BORDER
        high = ROOM_SIZE - 1 - BUILD_BORDER
        return low <= self.x <= high and low <= self.y <= high

    def offset(self, dx: int, dy: int) -> "Location":
        return Location(self.x + dx, self.y + dy)

    def distance_to(self, other: "Location") -> int:
        """Chebyshev distance, the number of moves on an 8-way grid."""
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def neighbors(self) -> List["Location"]:
        """All in-room 8-way neighbours in row-major order."""
        result = []
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = self.x + dx, self.y + dy
            if 0 <= nx < ROOM_SIZE and 0 <= ny < ROOM_SIZE:
                result.append(Location(nx, ny))
        return result

    def to_list(self) -> List[int]:
        return [self.x, self.y]

    @classmethod
    def from_any(cls, value) -> "Location":
        """Build a Location from a Location, ``[x, y]``, ``{"x", "y"}`` or a packed int."""
        if isinstance(value, Location):
            return value
        if isinstance(value, dict):
            return cls(int(value["x"]), int(value["y"]))
        if isinstance(value, int):
            return cls.unpack(value)
        x, y = value
        return cls(int(x), int(y))


def all_locations() -> Iterable[Location]:
    """Every tile of the room in row-major order."""
    for y in range(ROOM_SIZE):
        for x in range(ROOM_SIZE):
            yield Location(x, y)


# =========================
# Terrain Grid
# =========================

class TerrainGrid:
    """Immutable terrain of one room with O(1) accessibility queries.

    Raw codes follow the environment's bit flags: bit 1 is wall, bit 2 is
    swamp, and a tile carrying both is a wall.
    """

    def __init__(self, terrain, swamp_cost: float = SWAMP_COST):
        raw = np.asarray(terrain, dtype=np.uint8)
        if raw.shape != (ROOM_SIZE, ROOM_SIZE):
            raise ValueError(
                f"Terrain must be {ROOM_SIZE}x{ROOM_SIZE}, got {raw.shape}"
            )
        codes = np.where(
            raw & Terrain.WALL,
            Terrain.WALL,
            np.where(raw & Terrain.SWAMP, Terrain.SWAMP, Terrain.PLAIN),
        ).astype(np.uint8)
        codes.setflags(write=False)
        self._codes = codes
        self.swamp_cost = swamp_cost

        walkable = codes != Terrain.WALL
        walkable.setflags(write=False)
        self.walkable_mask = walkable

    @classmethod
    def from_rows(cls, rows: List[Union[str, List[int]]], **kwargs) -> "TerrainGrid":
        """Build from 50 rows, each a digit string or a list of ints."""
        parsed = []
        for row in rows:
            if isinstance(row, str):
                parsed.append([int(ch) for ch in row])
            else:
                parsed.append([int(v) for v in row])
        return cls(parsed, **kwargs)

    @classmethod
    def from_string(cls, encoded: str, **kwargs) -> "TerrainGrid":
        """Build from a flat row-major string of 2500 digits."""
        if len(encoded) != ROOM_SIZE * ROOM_SIZE:
            raise ValueError(
                f"Terrain string must have {ROOM_SIZE * ROOM_SIZE} characters"
            )
        flat = np.frombuffer(encoded.encode("ascii"), dtype=np.uint8) - ord("0")
        return cls(flat.reshape(ROOM_SIZE, ROOM_SIZE), **kwargs)

    @classmethod
    def plain(cls, **kwargs) -> "TerrainGrid":
        """An all-plain room."""
        return cls(np.zeros((ROOM_SIZE, ROOM_SIZE), dtype=np.uint8), **kwargs)

    def to_rows(self) -> List[str]:
        return ["".join(str(int(v)) for v in row) for row in self._codes]

    @property
    def codes(self) -> np.ndarray:
        return self._codes

    def in_bounds(self, loc: Location) -> bool:
        return loc.in_room()

    def _check(self, loc: Location):
        if not self.in_bounds(loc):
            raise OutOfBounds(loc.x, loc.y)

    def terrain_at(self, loc: Location) -> Terrain:
        self._check(loc)
        return Terrain(int(self._codes[loc.y, loc.x]))

    def is_walkable(self, loc: Location) -> bool:
        self._check(loc)
        return bool(self.walkable_mask[loc.y, loc.x])

    def is_wall(self, loc: Location) -> bool:
        return not self.is_walkable(loc)

    def is_swamp(self, loc: Location) -> bool:
        self._check(loc)
        return self._codes[loc.y, loc.x] == Terrain.SWAMP

    def movement_cost(self, loc: Location) -> float:
        """Road planning cost of stepping onto ``loc`` (``inf`` for walls)."""
        code = self.terrain_at(loc)
        if code == Terrain.WALL:
            return math.inf
        if code == Terrain.SWAMP:
            return self.swamp_cost
        return PLAIN_COST

    def exits(self) -> List[Location]:
        """Walkable border tiles in row-major order."""
        result = []
        for loc in all_locations():
            if loc.is_edge() and self.walkable_mask[loc.y, loc.x]:
                result.append(loc)
        return result


# =========================
# Grid Algorithms
# =========================

def distance_transform(grid: TerrainGrid) -> np.ndarray:
    """Chebyshev distance from each tile to the nearest wall or room edge.

    Walls and edge tiles are 0. The edge tiles are marked blocked so the
    chessboard transform of scipy sees them as background.

    Args:
        grid: Room terrain.

    Returns:
        int32 array indexed ``[y, x]``.
    """
    blocked = ~grid.walkable_mask
    blocked[0, :] = True
    blocked[-1, :] = True
    blocked[:, 0] = True
    blocked[:, -1] = True
    return ndimage.distance_transform_cdt(~blocked, metric="chessboard").astype(np.int32)


def flood_fill(
    grid: TerrainGrid,
    seeds: Iterable[Location],
    passable: Optional[Callable[[Location], bool]] = None,
    blocked: Optional[Set[Location]] = None,
    max_distance: Optional[int] = None,
) -> np.ndarray:
    """8-way breadth-first distances from a set of seed tiles.

    Seeds are always distance 0, even when they are not walkable (a source or
    controller tile). Expansion enters only walkable tiles that pass the
    optional ``passable`` callback and are not in ``blocked``.

    Args:
        grid: Room terrain.
        seeds: Starting tiles.
        passable: Extra predicate for tiles the fill may enter.
        blocked: Tiles the fill may never enter.
        max_distance: Stop expanding beyond this distance.

    Returns:
        int32 array indexed ``[y, x]`` with UNREACHED for unvisited tiles.
    """
    dist = np.full((ROOM_SIZE, ROOM_SIZE), UNREACHED, dtype=np.int32)
    blocked = blocked or set()
    walkable = grid.walkable_mask
    queue = deque()

    for seed in seeds:
        if not seed.in_room() or dist[seed.y, seed.x] != UNREACHED:
            continue
        dist[seed.y, seed.x] = 0
        queue.append(seed)

    while queue:
        current = queue.popleft()
        d = int(dist[current.y, current.x])
        if max_distance is not None and d >= max_distance:
            continue
        for nxt in current.neighbors():
            if dist[nxt.y, nxt.x] != UNREACHED:
                continue
            if not walkable[nxt.y, nxt.x] or nxt in blocked:
                continue
            if passable is not None and not passable(nxt):
                continue
            dist[nxt.y, nxt.x] = d + 1
            queue.append(nxt)

    return dist


def distance_at(dist: np.ndarray, loc: Location) -> int:
    """Read a distance map value, UNREACHED when outside the room."""
    if not loc.in_room():
        return UNREACHED
    return int(dist[loc.y, loc.x])
