"""
Extension and structure placement.

Two strategies share one contract, ``(ctx, structure_type, count, role) ->
placed``:

- STAMP_FIT drops fixed stamps around the hub, largest stamp first, trying
  every rotation and reflection at each anchor tile in hub-distance order.
- FLOOD_FILL grows outward from the hub one tile at a time and places single
  structures on a checkerboard so the untouched half of the board stays a
  connected walkway.

``place_with_policy`` runs the configured strategies in order until the
requested count is reached.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .errors import InsufficientSpace
from .layout import (
    ROLE_DEFENSE,
    ROLE_EXTENSION,
    ROLE_HUB,
    ROLE_LAB,
    ROLE_UTILITY,
    PlanningContext,
)
from .stamps import EXTENSION_STAMPS, LAB_STAMP, Stamp
from .structures import StructureType
from .terrain import UNREACHED, Location, all_locations

DEBUG = False


class PlacementStrategy(str, Enum):
    STAMP_FIT = "stamp_fit"
    FLOOD_FILL = "flood_fill"


STAMPS_BY_TYPE: Dict[StructureType, List[Stamp]] = {
    StructureType.EXTENSION: EXTENSION_STAMPS,
    StructureType.LAB: [LAB_STAMP],
}


# =========================
# Helpers
# =========================

def _hub_ordered_tiles(ctx: PlanningContext, min_distance: int,
                       max_distance: Optional[int] = None) -> List[Location]:
    """Reachable tiles sorted by hub walking distance, then row-major."""
    dist = ctx.hub_distance()
    tiles = []
    for loc in all_locations():
        d = int(dist[loc.y, loc.x])
        if d == UNREACHED or d < min_distance:
            continue
        if max_distance is not None and d > max_distance:
            continue
        tiles.append((d, loc.index, loc))
    tiles.sort()
    return [entry[2] for entry in tiles]


def _road_free(ctx: PlanningContext, loc: Location) -> bool:
    """A road can go here: allowed terrain and either unclaimed or already a road."""
    if not ctx.is_road_allowed(loc):
        return False
    return ctx.plan.has_road(loc) or not ctx.plan.is_claimed(loc)


def _open_side(ctx: PlanningContext, loc: Location, blocked: Set[Location]) -> bool:
    """``loc`` keeps at least one neighbour a creep could stand on."""
    for n in loc.neighbors():
        if n in blocked or n in ctx.analysis.points_of_interest:
            continue
        if ctx.grid.walkable_mask[n.y, n.x] and not ctx.plan.is_blocking(n):
            return True
    return False


def _seals_neighbors(ctx: PlanningContext, blocked: Set[Location]) -> bool:
    """True when blocking ``blocked`` would close off a structure or road anchor next to it."""
    plan = ctx.plan
    for loc in blocked:
        for n in loc.neighbors():
            if n in blocked:
                continue
            if not (plan.is_blocking(n) or n in plan.reserved or n in plan.anchors):
                continue
            if not _open_side(ctx, n, blocked):
                return True
    return False


def _apply_stamp(ctx: PlanningContext, stamp: Stamp, anchor: Location, role: str):
    plan = ctx.plan
    network_anchor = None
    for p in stamp.placements:
        loc = anchor.offset(p.dx, p.dy)
        if p.structure_type == StructureType.ROAD:
            if not loc.in_room() or not _road_free(ctx, loc):
                continue
            plan.add_road(loc)
            if p.required and network_anchor is None:
                network_anchor = loc
        elif p.required or (loc.in_room() and ctx.is_buildable(loc)):
            plan.place(loc, p.structure_type, role)
    if network_anchor is not None:
        plan.add_anchor(network_anchor)


# =========================
# Strategies
# =========================

def _keeps_access(ctx: PlanningContext, stamp: Stamp, anchor: Location) -> bool:
    """Neither the stamp's own structures nor their neighbours end up walled in."""
    blocked = {
        anchor.offset(p.dx, p.dy) for p in stamp.structures() if p.required
    }
    if any(not _open_side(ctx, loc, blocked) for loc in blocked):
        return False
    return not _seals_neighbors(ctx, blocked)


def stamp_fit(ctx: PlanningContext, structure_type: StructureType, count: int,
              role: str, min_distance: int = 0) -> int:
    """Tile stamps around the hub.

    Larger stamps are tried first and a stamp is skipped once it would
    overshoot the remaining count, so the result uses as few stamps as the
    terrain allows.

    Returns:
        Number of ``structure_type`` structures placed.
    """
    stamps = sorted(STAMPS_BY_TYPE.get(structure_type, []),
                    key=lambda s: -s.count(structure_type))
    if not stamps or count <= 0:
        return 0

    def can_build(loc: Location) -> bool:
        return ctx.is_buildable(loc) and ctx.hub_distance_at(loc) >= min_distance

    def can_road(loc: Location) -> bool:
        return _road_free(ctx, loc) and ctx.hub_distance_at(loc) < 10 ** 6

    placed = 0
    tiles = _hub_ordered_tiles(ctx, min_distance)
    for stamp in stamps:
        size = stamp.count(structure_type)
        variants = stamp.variants()
        for anchor in tiles:
            if count - placed < size:
                break
            if not can_build(anchor):
                continue
            for variant in variants:
                if variant.fits_at(anchor, can_build, can_road) and _keeps_access(ctx, variant, anchor):
                    _apply_stamp(ctx, variant, anchor, role)
                    placed += size
                    if DEBUG:
                        print(f"[DEBUG] {variant.name} at {anchor}")
                    break
    return placed


def _access_tile(ctx: PlanningContext, loc: Location) -> Optional[Location]:
    """Neighbour of ``loc`` a creep can stand on, closer to the hub."""
    here = ctx.hub_distance_at(loc)
    options = [
        n for n in loc.neighbors()
        if _road_free(ctx, n) and ctx.hub_distance_at(n) < here
    ]
    if not options:
        return None
    return min(options, key=lambda n: (ctx.hub_distance_at(n), n.index))


def flood_fill(ctx: PlanningContext, structure_type: StructureType, count: int,
               role: str, min_distance: int = 0, max_distance: Optional[int] = None) -> int:
    """Place single structures outward from the hub on the hub's checkerboard colour.

    Each structure needs an access tile one step closer to the hub; that tile
    is registered as a road anchor unless an anchor or road already touches
    the structure.

    Returns:
        Number of structures placed.
    """
    if count <= 0:
        return 0
    hub = ctx.hub
    parity = (hub.x + hub.y) % 2
    plan = ctx.plan
    placed = 0
    for loc in _hub_ordered_tiles(ctx, max(min_distance, 1), max_distance):
        if placed >= count:
            break
        if (loc.x + loc.y) % 2 != parity or not ctx.is_buildable(loc):
            continue
        access = _access_tile(ctx, loc)
        if access is None or _seals_neighbors(ctx, {loc}):
            continue
        plan.place(loc, structure_type, role)
        served = any(plan.has_road(n) or n in plan.anchors for n in loc.neighbors())
        if not served:
            plan.reserve(access)
            plan.add_anchor(access)
        placed += 1
    return placed


def _open_neighbors(ctx: PlanningContext, loc: Location) -> int:
    return sum(1 for n in loc.neighbors() if ctx.is_buildable(n) or _road_free(ctx, n))


def place_spawns(ctx: PlanningContext) -> int:
    """Add spawns near the hub until ``structures.spawns`` exist.

    Roomier tiles win, then hub distance. Spawns keep ``spawn_spacing``
    between each other and, like flood-filled structures, need an access
    tile one step closer to the hub.

    Returns:
        Number of spawns added.

    Raises:
        InsufficientSpace: If the requested total does not fit.
    """
    opts = ctx.config["structures"]
    plan = ctx.plan
    spawns = plan.locations_of(StructureType.SPAWN)
    wanted = int(opts["spawns"]) - len(spawns)
    if wanted <= 0:
        return 0
    spacing = int(opts["spawn_spacing"])

    options = []
    for loc in _hub_ordered_tiles(ctx, int(opts["spawn_min_range"]), int(opts["spawn_max_range"])):
        if not ctx.is_buildable(loc):
            continue
        open_sides = _open_neighbors(ctx, loc)
        if open_sides >= 2:
            options.append((-open_sides, ctx.hub_distance_at(loc), loc.index, loc))
    options.sort()

    placed = 0
    for *_, loc in options:
        if placed >= wanted:
            break
        if any(loc.distance_to(s) < spacing for s in spawns) or not ctx.is_buildable(loc):
            continue
        access = _access_tile(ctx, loc)
        if access is None or _seals_neighbors(ctx, {loc}):
            continue
        plan.place(loc, StructureType.SPAWN, ROLE_HUB)
        if not any(plan.has_road(n) or n in plan.anchors for n in loc.neighbors()):
            plan.reserve(access)
            plan.add_anchor(access)
        spawns.append(loc)
        placed += 1

    if placed < wanted:
        raise InsufficientSpace("spawns", placed, wanted)
    return placed


STRATEGIES = {
    PlacementStrategy.STAMP_FIT: stamp_fit,
    PlacementStrategy.FLOOD_FILL: flood_fill,
}


def choose_strategies(config: Dict[str, Any]) -> List[PlacementStrategy]:
    """Strategy order from config, stamp fitting then flood fill by default."""
    names = config["extensions"].get("strategies") or [s.value for s in PlacementStrategy]
    return [PlacementStrategy(name) for name in names]


def place_with_policy(ctx: PlanningContext, structure_type: StructureType, count: int,
                      role: str, strategies: List[PlacementStrategy], **limits) -> int:
    placed = 0
    for strategy in strategies:
        if placed >= count:
            break
        placed += STRATEGIES[strategy](ctx, structure_type, count - placed, role, **limits)
    return placed


# =========================
# Stage Entry Points
# =========================

def place_extensions(ctx: PlanningContext):
    """Place every extension.

    Raises:
        InsufficientSpace: If fewer than ``extensions.count`` fit.
    """
    opts = ctx.config["extensions"]
    required = int(opts["count"])
    placed = place_with_policy(
        ctx, StructureType.EXTENSION, required, ROLE_EXTENSION,
        choose_strategies(ctx.config), min_distance=int(opts["min_hub_spacing"]),
    )
    if placed < required:
        raise InsufficientSpace("extensions", placed, required)


def place_support_structures(ctx: PlanningContext):
    """Extra spawns, labs, towers and the observer.

    Labs only go down as a complete stamp and are skipped when none fits.
    Towers flood-fill inside their hub range.

    Raises:
        InsufficientSpace: If not every spawn or tower fits.
    """
    opts = ctx.config["structures"]
    place_spawns(ctx)
    if opts.get("labs", True):
        labs = stamp_fit(ctx, StructureType.LAB, LAB_STAMP.count(StructureType.LAB), ROLE_LAB,
                         min_distance=int(ctx.config["extensions"]["min_hub_spacing"]))
        if DEBUG and not labs:
            print("[DEBUG] no room for the lab stamp")

    towers = int(opts["towers"])
    placed = flood_fill(
        ctx, StructureType.TOWER, towers, ROLE_DEFENSE,
        min_distance=int(opts["tower_min_range"]),
        max_distance=int(opts["tower_max_range"]),
    )
    if placed < towers:
        raise InsufficientSpace("towers", placed, towers)

    if opts.get("observer", True):
        flood_fill(ctx, StructureType.OBSERVER, 1, ROLE_UTILITY,
                   min_distance=int(opts["tower_max_range"]))
