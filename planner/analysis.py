"""
Room analysis.

Derived per-room data computed once at the start of a planning run and shared
read-only by every candidate: the distance transform, walking distances from
each point of interest and from the exits, and the exit setback zone.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

import numpy as np

from .room_data import RoomDataSource
from .terrain import (
    UNREACHED,
    Location,
    TerrainGrid,
    all_locations,
    distance_transform,
    flood_fill,
)

DEBUG = False


@dataclass
class RoomAnalysis:
    grid: TerrainGrid
    openness: np.ndarray
    points_of_interest: FrozenSet[Location]
    source_distances: List[np.ndarray]
    controller_distance: Optional[np.ndarray]
    mineral_distance: Optional[np.ndarray]
    exit_distance: np.ndarray
    exit_setback: FrozenSet[Location] = field(default_factory=frozenset)

    def poi_distances(self) -> Dict[str, List[np.ndarray]]:
        """Distance maps grouped by the hub weight they contribute to."""
        return {
            "source": list(self.source_distances),
            "controller": [self.controller_distance] if self.controller_distance is not None else [],
            "mineral": [self.mineral_distance] if self.mineral_distance is not None else [],
        }


def analyze_room(room: RoomDataSource, setback: int = 3) -> RoomAnalysis:
    """Run every room-level precomputation.

    Args:
        room: Room data source.
        setback: Walking distance from an exit inside which nothing is built.

    Returns:
        RoomAnalysis for the room.
    """
    grid = room.get_terrain()
    pois = frozenset(room.points_of_interest())

    def from_point(point: Location) -> np.ndarray:
        return flood_fill(grid, [point], blocked=set(pois - {point}))

    source_distances = [from_point(s) for s in room.get_sources()]
    controller = room.get_controller()
    mineral = room.get_mineral()

    exits = grid.exits()
    exit_distance = flood_fill(grid, exits, blocked=set(pois))
    excluded = frozenset(
        loc for loc in all_locations()
        if exit_distance[loc.y, loc.x] != UNREACHED
        and exit_distance[loc.y, loc.x] <= setback
    )

    if DEBUG:
        print(f"[DEBUG] {room.name}: {len(exits)} exit tiles, "
              f"{len(excluded)} setback tiles")

    return RoomAnalysis(
        grid=grid,
        openness=distance_transform(grid),
        points_of_interest=pois,
        source_distances=source_distances,
        controller_distance=from_point(controller) if controller is not None else None,
        mineral_distance=from_point(mineral.location) if mineral is not None else None,
        exit_distance=exit_distance,
        exit_setback=excluded,
    )
