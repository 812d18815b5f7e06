"""
Scoring module for room plans.

This module computes the composite quality score used to pick the winning
candidate. Every component is normalised to [0, 1] with higher meaning better
and the total is the weighted mean of the components.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .layout import CandidatePlan
from .reachability import walkable_from_hub
from .structures import StructureType
from .terrain import UNREACHED, Location, TerrainGrid

# Average extension distance that scores zero
EXTENSION_DISTANCE_SCALE = 25.0

# Upkeep units that score zero
UPKEEP_SCALE = 200.0

# Tower damage falloff: full inside the near range, a quarter beyond the far one
TOWER_NEAR_RANGE = 5
TOWER_FAR_RANGE = 20
TOWER_MAX_DAMAGE = 600
TOWER_MIN_DAMAGE = 150

# Summed tower damage on the weakest rampart that scores one
TOWER_COVERAGE_SCALE = 3600.0

HUB_KEY_TYPES = frozenset({
    StructureType.STORAGE,
    StructureType.TERMINAL,
    StructureType.LINK,
    StructureType.FACTORY,
    StructureType.POWER_SPAWN,
})

UPGRADE_RANGE = 3
UPGRADE_SPOTS = 4

DEFENSE_LINE_TYPES = frozenset({StructureType.RAMPART, StructureType.WALL})


@dataclass
class PlanScore:
    total: float
    components: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "components": dict(self.components)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanScore":
        return cls(float(data["total"]), {k: float(v) for k, v in data.get("components", {}).items()})


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def bounding_region(locations: Iterable[Location]) -> Optional[Tuple[int, int, int, int]]:
    """(min_x, min_y, max_x, max_y) of the given tiles, None when empty."""
    locations = list(locations)
    if not locations:
        return None
    xs = [loc.x for loc in locations]
    ys = [loc.y for loc in locations]
    return min(xs), min(ys), max(xs), max(ys)


def _region_tiles(region: Tuple[int, int, int, int]) -> List[Location]:
    min_x, min_y, max_x, max_y = region
    return [Location(x, y) for y in range(min_y, max_y + 1) for x in range(min_x, max_x + 1)]


def _core_tiles(plan: CandidatePlan) -> List[Location]:
    """Planned tiles without the rampart and wall line."""
    return [loc for loc, item in plan.items.items() if item.structure_type not in DEFENSE_LINE_TYPES]


def _point_targets(plan: CandidatePlan) -> List[Location]:
    """Tiles a hauler walks to: each source, controller and mineral stub."""
    refs = plan.infrastructure
    targets = [entry["stub"] for entry in refs.get("sources", [])]
    for key in ("controller", "mineral"):
        if refs.get(key):
            targets.append(refs[key]["stub"])
    return targets


# =========================
# Components
# =========================

def score_path_length(plan: CandidatePlan, walk: np.ndarray, max_path: float) -> float:
    """1 minus the average hub walking distance to each point of interest."""
    targets = _point_targets(plan)
    if not targets:
        return 1.0
    lengths = []
    for loc in targets:
        d = int(walk[loc.y, loc.x])
        lengths.append(max_path if d == UNREACHED else min(d, max_path))
    return _clamp(1.0 - (sum(lengths) / len(lengths)) / max_path)


def score_compactness(plan: CandidatePlan) -> float:
    """Share of the bounding region actually covered by structures."""
    structures = [
        loc for loc, item in plan.structures() if item.structure_type not in DEFENSE_LINE_TYPES
    ]
    region = bounding_region(structures)
    if region is None:
        return 0.0
    min_x, min_y, max_x, max_y = region
    area = (max_x - min_x + 1) * (max_y - min_y + 1)
    return _clamp(len(structures) / area)


def score_wasted_tiles(plan: CandidatePlan, grid: TerrainGrid, walk: np.ndarray,
                       points_of_interest: Iterable[Location] = ()) -> float:
    """1 minus the share of empty walkable tiles in the region that nobody can reach."""
    region = bounding_region(_core_tiles(plan))
    if region is None:
        return 1.0
    pois = set(points_of_interest)
    empty = 0
    wasted = 0
    for loc in _region_tiles(region):
        if loc in plan.items or loc in pois or not grid.walkable_mask[loc.y, loc.x]:
            continue
        empty += 1
        if walk[loc.y, loc.x] == UNREACHED:
            wasted += 1
    if empty == 0:
        return 1.0
    return _clamp(1.0 - wasted / empty)


def score_defensibility(plan: CandidatePlan, grid: TerrainGrid, margin: int) -> float:
    """Share of the perimeter ring (region grown by ``margin``) already sealed by walls or the room edge."""
    region = bounding_region(_core_tiles(plan))
    if region is None:
        return 0.0
    min_x, min_y, max_x, max_y = region
    min_x, min_y = min_x - margin, min_y - margin
    max_x, max_y = max_x + margin, max_y + margin

    ring = []
    for x in range(min_x, max_x + 1):
        ring.append(Location(x, min_y))
        ring.append(Location(x, max_y))
    for y in range(min_y + 1, max_y):
        ring.append(Location(min_x, y))
        ring.append(Location(max_x, y))

    sealed = sum(
        1 for loc in ring
        if not loc.in_room() or not grid.walkable_mask[loc.y, loc.x]
    )
    return _clamp(sealed / len(ring))


def score_extension_efficiency(plan: CandidatePlan) -> float:
    """1 minus the average extension distance to the hub over a fixed scale."""
    extensions = plan.locations_of(StructureType.EXTENSION)
    if not extensions or plan.hub is None:
        return 0.0
    avg = sum(plan.hub.distance_to(loc) for loc in extensions) / len(extensions)
    return _clamp(1.0 - avg / EXTENSION_DISTANCE_SCALE)


def score_upkeep(plan: CandidatePlan, grid: TerrainGrid) -> float:
    """Decaying structures cost upkeep; roads on swamp decay fastest."""
    containers = plan.count(StructureType.CONTAINER)
    ramparts = plan.count(StructureType.RAMPART)
    swamp_roads = sum(1 for loc in plan.road_tiles() if grid.is_swamp(loc))
    cost = ramparts + containers * 2 + swamp_roads * 3
    return _clamp(1.0 - cost / UPKEEP_SCALE)


def tower_damage(distance: int) -> int:
    """Damage of one tower shot at ``distance`` tiles."""
    if distance <= TOWER_NEAR_RANGE:
        return TOWER_MAX_DAMAGE
    if distance >= TOWER_FAR_RANGE:
        return TOWER_MIN_DAMAGE
    falloff = (TOWER_MAX_DAMAGE - TOWER_MIN_DAMAGE) * (distance - TOWER_NEAR_RANGE)
    return TOWER_MAX_DAMAGE - falloff // (TOWER_FAR_RANGE - TOWER_NEAR_RANGE)


def score_tower_coverage(plan: CandidatePlan) -> float:
    """Summed tower damage on the weakest rampart, over a fixed scale."""
    towers = plan.locations_of(StructureType.TOWER)
    ramparts = plan.locations_of(StructureType.RAMPART)
    if not towers or not ramparts:
        return 0.0
    weakest = min(
        sum(tower_damage(tower.distance_to(rampart)) for tower in towers)
        for rampart in ramparts
    )
    return _clamp(weakest / TOWER_COVERAGE_SCALE)


def score_hub_quality(plan: CandidatePlan) -> float:
    """Share of the hub's key structures within reach of the hub tile."""
    if plan.hub is None:
        return 0.0
    adjacent = sum(
        1 for n in plan.hub.neighbors()
        if n in plan.items and plan.items[n].structure_type in HUB_KEY_TYPES
    )
    return _clamp(adjacent / len(HUB_KEY_TYPES))


def score_upgrade_area(plan: CandidatePlan, grid: TerrainGrid,
                       points_of_interest: Iterable[Location] = ()) -> float:
    """Free standing room for upgraders around the controller."""
    controller = (plan.infrastructure.get("controller") or {}).get("point")
    if controller is None:
        return 0.0
    pois = set(points_of_interest)
    free = 0
    for dy in range(-UPGRADE_RANGE, UPGRADE_RANGE + 1):
        for dx in range(-UPGRADE_RANGE, UPGRADE_RANGE + 1):
            loc = controller.offset(dx, dy)
            if not loc.is_interior() or loc in pois or loc in plan.items:
                continue
            if grid.walkable_mask[loc.y, loc.x]:
                free += 1
    return min(free, UPGRADE_SPOTS) / UPGRADE_SPOTS


# =========================
# Public: Composite Score
# =========================

def score_plan(plan: CandidatePlan, grid: TerrainGrid, config: Dict[str, Any],
               points_of_interest: Iterable[Location] = ()) -> PlanScore:
    """Compute every component and the weighted total.

    Args:
        plan: Finished candidate plan.
        grid: Room terrain.
        config: Full planner config.
        points_of_interest: Sources, controller and mineral tiles.

    Returns:
        PlanScore with the total rounded to 6 places for stable comparison.
    """
    opts = config["scoring"]
    weights = opts["weights"]
    pois = list(points_of_interest)
    walk = walkable_from_hub(grid, plan, pois)

    components = {
        "path_length": score_path_length(plan, walk, float(opts["max_path_length"])),
        "compactness": score_compactness(plan),
        "wasted_tiles": score_wasted_tiles(plan, grid, walk, pois),
        "defensibility": score_defensibility(plan, grid, int(opts["defense_margin"])),
        "extension_efficiency": score_extension_efficiency(plan),
        "upkeep": score_upkeep(plan, grid),
        "tower_coverage": score_tower_coverage(plan),
        "hub_quality": score_hub_quality(plan),
        "upgrade_area": score_upgrade_area(plan, grid, pois),
    }

    weight_sum = 0.0
    weighted = 0.0
    for name, value in components.items():
        w = float(weights.get(name, 0.0))
        weight_sum += w
        weighted += w * value
    total = weighted / weight_sum if weight_sum > 0 else 0.0

    return PlanScore(
        round(total, 6),
        {name: round(value, 6) for name, value in components.items()},
    )
