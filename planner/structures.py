"""
Structure types and per-tier caps.

This module holds the structure vocabulary of the target environment and the
table of how many of each type may exist at every controller tier (RCL).

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from enum import Enum
from typing import Dict, List, Optional

MAX_TIER = 8

# Returned by min_tier_for_nth when a count can never be reached
IMPOSSIBLE_TIER = MAX_TIER + 1


class StructureType(str, Enum):
    """Structure names exactly as the environment spells them."""

    SPAWN = "spawn"
    EXTENSION = "extension"
    ROAD = "road"
    WALL = "constructedWall"
    RAMPART = "rampart"
    LINK = "link"
    STORAGE = "storage"
    TOWER = "tower"
    OBSERVER = "observer"
    POWER_SPAWN = "powerSpawn"
    EXTRACTOR = "extractor"
    LAB = "lab"
    TERMINAL = "terminal"
    CONTAINER = "container"
    NUKER = "nuker"
    FACTORY = "factory"


# Types that may share a tile with a road
ROAD_COMPATIBLE = frozenset({StructureType.CONTAINER, StructureType.RAMPART})

# Types a creep can walk onto
NON_BLOCKING = frozenset({
    StructureType.ROAD,
    StructureType.CONTAINER,
    StructureType.RAMPART,
})

# Maximum count per tier, indexed 0..8
TIER_CAPS: Dict[StructureType, List[int]] = {
    StructureType.SPAWN: [0, 1, 1, 1, 1, 1, 1, 2, 3],
    StructureType.EXTENSION: [0, 0, 5, 10, 20, 30, 40, 50, 60],
    StructureType.LINK: [0, 0, 0, 0, 0, 2, 3, 4, 6],
    StructureType.STORAGE: [0, 0, 0, 0, 1, 1, 1, 1, 1],
    StructureType.TOWER: [0, 0, 0, 1, 1, 2, 2, 3, 6],
    StructureType.OBSERVER: [0, 0, 0, 0, 0, 0, 0, 0, 1],
    StructureType.POWER_SPAWN: [0, 0, 0, 0, 0, 0, 0, 0, 1],
    StructureType.EXTRACTOR: [0, 0, 0, 0, 0, 0, 1, 1, 1],
    StructureType.LAB: [0, 0, 0, 0, 0, 0, 3, 6, 10],
    StructureType.TERMINAL: [0, 0, 0, 0, 0, 0, 1, 1, 1],
    StructureType.NUKER: [0, 0, 0, 0, 0, 0, 0, 0, 1],
    StructureType.FACTORY: [0, 0, 0, 0, 0, 0, 0, 1, 1],
    StructureType.CONTAINER: [5, 5, 5, 5, 5, 5, 5, 5, 5],
    StructureType.RAMPART: [0, 0, 2500, 2500, 2500, 2500, 2500, 2500, 2500],
    StructureType.WALL: [0, 0, 2500, 2500, 2500, 2500, 2500, 2500, 2500],
    StructureType.ROAD: [2500] * (MAX_TIER + 1),
}

# Types whose tier comes from the caps table rather than a fixed default
TIERED_TYPES = frozenset(
    t for t in TIER_CAPS
    if t not in (
        StructureType.ROAD,
        StructureType.CONTAINER,
        StructureType.RAMPART,
        StructureType.WALL,
    )
)

# Build priority for operations within one tier (higher builds first)
BUILD_PRIORITY: Dict[StructureType, int] = {
    StructureType.SPAWN: 100,
    StructureType.EXTENSION: 90,
    StructureType.TOWER: 85,
    StructureType.STORAGE: 80,
    StructureType.CONTAINER: 75,
    StructureType.LINK: 70,
    StructureType.TERMINAL: 60,
    StructureType.EXTRACTOR: 55,
    StructureType.LAB: 50,
    StructureType.FACTORY: 45,
    StructureType.POWER_SPAWN: 40,
    StructureType.NUKER: 35,
    StructureType.OBSERVER: 30,
    StructureType.ROAD: 20,
    StructureType.RAMPART: 10,
    StructureType.WALL: 5,
}


def parse_structure_type(value) -> StructureType:
    """Normalize a structure type given as enum, value or member name.

    Raises:
        ValueError: If the name is unknown.
    """
    if isinstance(value, StructureType):
        return value
    s = str(value).strip()
    try:
        return StructureType(s)
    except ValueError:
        pass
    try:
        return StructureType[s.upper()]
    except KeyError:
        raise ValueError(f"Unknown structure type: {value!r}")


def max_structures_at(
    structure_type: StructureType,
    tier: int,
    caps: Optional[Dict[StructureType, List[int]]] = None,
) -> int:
    """Maximum number of ``structure_type`` allowed at ``tier``.

    Args:
        structure_type: Structure type to look up.
        tier: Controller tier, clamped to 0..MAX_TIER.
        caps: Optional replacement caps table.

    Returns:
        Allowed count, 0 when the type is not available.
    """
    table = caps if caps is not None else TIER_CAPS
    row = table.get(structure_type)
    if not row:
        return 0
    tier = max(0, min(tier, len(row) - 1))
    return row[tier]


def min_tier_for_nth(
    structure_type: StructureType,
    n: int,
    caps: Optional[Dict[StructureType, List[int]]] = None,
) -> int:
    """Lowest tier at which the ``n``-th (1-based) structure may exist.

    Returns 0 for n == 0 and IMPOSSIBLE_TIER when the count is never allowed.
    """
    if n <= 0:
        return 0
    for tier in range(1, MAX_TIER + 1):
        if max_structures_at(structure_type, tier, caps) >= n:
            return tier
    return IMPOSSIBLE_TIER


def caps_from_config(raw: Optional[Dict[str, List[int]]]) -> Dict[StructureType, List[int]]:
    """Merge caps overrides from config (keyed by type value) over TIER_CAPS."""
    caps = dict(TIER_CAPS)
    for name, row in (raw or {}).items():
        caps[parse_structure_type(name)] = [int(v) for v in row]
    return caps
