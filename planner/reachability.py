"""
Reachability validation.

Flood fills from the hub over every tile a creep can stand on and confirms
each planned structure is either visited or, for structures creeps cannot
stand on, touched by a visited tile. Structures that are reached only by a
long way round (walk distance well above their straight-line distance) are
rejected as well; the mineral area is exempt from that second check.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from typing import FrozenSet, Iterable, Optional, Set

import numpy as np

from .errors import UnreachableStructure
from .layout import CandidatePlan, PlanningContext
from .terrain import UNREACHED, Location, TerrainGrid, flood_fill


def walkable_from_hub(grid: TerrainGrid, plan: CandidatePlan,
                      points_of_interest: Iterable[Location] = ()) -> np.ndarray:
    """Distances from the hub over terrain-walkable tiles not covered by blocking structures."""
    blocked: Set[Location] = plan.blocking_tiles() | set(points_of_interest)
    blocked.discard(plan.hub)
    return flood_fill(grid, [plan.hub], blocked=blocked)


def validate_reachability(grid: TerrainGrid, plan: CandidatePlan,
                          points_of_interest: FrozenSet[Location] = frozenset(),
                          detour_ratio: Optional[float] = None,
                          detour_threshold: int = 0,
                          detour_exempt: FrozenSet[Location] = frozenset()):
    """Check every planned structure can be walked to from the hub.

    Args:
        grid: Room terrain.
        plan: Candidate plan to check.
        points_of_interest: Tiles no creep can enter.
        detour_ratio: Allowed walk distance per tile of straight-line
            distance; None skips the detour check.
        detour_threshold: Extra steps allowed on top of the ratio.
        detour_exempt: Locations skipped by the detour check only.

    Raises:
        UnreachableStructure: For the first unreached or over-long location
            in row-major order.
    """
    dist = walkable_from_hub(grid, plan, points_of_interest)

    def visited(loc: Location) -> bool:
        return dist[loc.y, loc.x] != UNREACHED

    for loc, item in plan.structures():
        if visited(loc):
            walk = int(dist[loc.y, loc.x])
        elif item.is_blocking and any(visited(n) for n in loc.neighbors()):
            walk = min(int(dist[n.y, n.x]) for n in loc.neighbors() if visited(n))
        else:
            raise UnreachableStructure(loc)

        if detour_ratio is None or loc in detour_exempt:
            continue
        limit = plan.hub.distance_to(loc) * detour_ratio + detour_threshold
        if walk > limit:
            raise UnreachableStructure(loc, f"needs {walk} steps from the hub, limit {limit:g}")


def validate_candidate(ctx: PlanningContext):
    """Reachability stage for one candidate."""
    opts = ctx.config["reachability"]
    exempt: Set[Location] = set()
    mineral = ctx.room.get_mineral()
    if mineral is not None:
        exempt.add(mineral.location)
        exempt.update(mineral.location.neighbors())
    validate_reachability(
        ctx.grid, ctx.plan, ctx.analysis.points_of_interest,
        detour_ratio=float(opts["detour_ratio"]),
        detour_threshold=int(opts["detour_threshold"]),
        detour_exempt=frozenset(exempt),
    )
