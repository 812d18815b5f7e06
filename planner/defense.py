"""
Rampart line placement.

The base is sealed off from the room exits with a minimum vertex cut. Every
passable tile becomes an in node and an out node joined by one edge, which
has capacity 1 where a rampart could go and no capacity limit elsewhere.
Exits hang off a super source and the protected tiles drain into a super
sink; networkx finds the cheapest set of tiles whose removal separates them.

Cut tiles become ramparts, with constructed walls on every other tile of the
line where nothing planned needs to walk through. A wall that ends up with
no rampart beside it is turned back into a rampart so the line never grows
a solid stretch creeps cannot cross.

Sources and the mineral keep their containers and links outside the line, as
does anything on the outer three rows of the room. Everything else is
protected, with a margin around the hub, spawns, towers and labs and a
smaller one around the controller.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from typing import Dict, Iterable, List, Set

import networkx as nx

from .errors import NoDefensiblePerimeter
from .layout import ROLE_DEFENSE, PlanningContext
from .structures import StructureType
from .terrain import BUILD_BORDER, ROOM_SIZE, Location, all_locations, flood_fill

DEBUG = False

SOURCE = -1
SINK = -2

LINE_TYPES = frozenset({StructureType.RAMPART, StructureType.WALL})

# Structures whose surroundings get the full margin
VALUABLE_TYPES = frozenset({
    StructureType.SPAWN,
    StructureType.TOWER,
    StructureType.LAB,
})

# Protection stops one tile short of the build border so the border row
# itself stays free for the cut
MARGIN_LOW = BUILD_BORDER + 1
MARGIN_HIGH = ROOM_SIZE - 2 - BUILD_BORDER


def _defendable(loc: Location) -> bool:
    return MARGIN_LOW <= loc.x <= MARGIN_HIGH and MARGIN_LOW <= loc.y <= MARGIN_HIGH


def _in_node(loc: Location) -> int:
    return loc.index * 2


def _out_node(loc: Location) -> int:
    return loc.index * 2 + 1


def _square(center: Location, radius: int) -> List[Location]:
    result = []
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            loc = center.offset(dx, dy)
            if loc.in_room():
                result.append(loc)
    return result


def remote_area(ctx: PlanningContext, radius: int) -> Set[Location]:
    """Tiles around sources and the mineral that may stay outside the line."""
    points = list(ctx.room.get_sources())
    mineral = ctx.room.get_mineral()
    if mineral is not None:
        points.append(mineral.location)
    area: Set[Location] = set()
    for point in points:
        area.update(_square(point, radius))
    return area


def protected_tiles(ctx: PlanningContext) -> Set[Location]:
    """Tiles the rampart line has to keep away from every exit."""
    opts = ctx.config["defense"]
    plan = ctx.plan
    remote = remote_area(ctx, int(opts["remote_range"]))

    protected: Set[Location] = set()
    centers = [plan.hub] if plan.hub is not None else []
    for loc, item in plan.structures():
        if item.structure_type in LINE_TYPES or loc in remote or not _defendable(loc):
            continue
        protected.add(loc)
        if item.structure_type in VALUABLE_TYPES:
            centers.append(loc)

    margins = [(center, int(opts["buffer"])) for center in centers]
    controller = ctx.room.get_controller()
    if controller is not None:
        margins.append((controller, int(opts["controller_buffer"])))
    for center, radius in margins:
        protected.update(loc for loc in _square(center, radius) if _defendable(loc))

    pois = ctx.analysis.points_of_interest
    return {loc for loc in protected if ctx.grid.is_walkable(loc) and loc not in pois}


# =========================
# Minimum cut
# =========================

def _passable(ctx: PlanningContext, loc: Location) -> bool:
    return ctx.grid.is_walkable(loc) and loc not in ctx.analysis.points_of_interest


def _cuttable(ctx: PlanningContext, loc: Location, protected: Set[Location]) -> bool:
    """A rampart may go here: interior, unprotected, at most a road on it."""
    if not loc.is_interior() or loc in protected:
        return False
    item = ctx.plan.items.get(loc)
    return item is None or item.structure_type is None


def flow_graph(ctx: PlanningContext, protected: Set[Location]) -> nx.DiGraph:
    """Node-split flow network of the room, exits to protected tiles."""
    graph = nx.DiGraph()
    for loc in all_locations():
        if not _passable(ctx, loc):
            continue
        if _cuttable(ctx, loc, protected):
            graph.add_edge(_in_node(loc), _out_node(loc), capacity=1)
        else:
            # No capacity attribute means unlimited to networkx
            graph.add_edge(_in_node(loc), _out_node(loc))
        for n in loc.neighbors():
            if _passable(ctx, n):
                graph.add_edge(_out_node(loc), _in_node(n))
        if loc.is_edge():
            graph.add_edge(SOURCE, _in_node(loc))
        if loc in protected:
            graph.add_edge(_out_node(loc), SINK)
    return graph


def min_cut_tiles(ctx: PlanningContext, protected: Set[Location]) -> List[Location]:
    """Fewest tiles separating every exit from ``protected``, row-major.

    Raises:
        NoDefensiblePerimeter: If a protected tile can be reached from an exit
            without crossing a tile a rampart could go on.
    """
    graph = flow_graph(ctx, protected)
    if SOURCE not in graph or SINK not in graph:
        return []
    try:
        _, (reachable, _) = nx.minimum_cut(graph, SOURCE, SINK)
    except nx.NetworkXUnbounded:
        raise NoDefensiblePerimeter("a protected tile is open to an exit")
    return [
        loc for loc in all_locations()
        if _in_node(loc) in reachable
        and _out_node(loc) in graph
        and _out_node(loc) not in reachable
    ]


# =========================
# Line layout
# =========================

def _needs_passage(ctx: PlanningContext, loc: Location) -> bool:
    """Something planned on or next to ``loc`` relies on walking through it."""
    plan = ctx.plan
    if plan.has_road(loc) or loc in plan.reserved or loc in plan.anchors:
        return True
    for n in loc.neighbors():
        if n in ctx.analysis.points_of_interest:
            return True
        item = plan.items.get(n)
        if item is not None and item.structure_type is not None \
                and item.structure_type not in LINE_TYPES:
            return True
    return False


def classify_line(ctx: PlanningContext, cut: Iterable[Location]) -> Dict[Location, StructureType]:
    """Rampart or wall for every cut tile."""
    cut = sorted(cut)
    walls = {
        loc for loc in cut
        if (loc.x ^ loc.y) & 1 == 0 and not _needs_passage(ctx, loc)
    }
    ramparts = set(cut) - walls
    for loc in cut:
        if loc in walls and not any(n in ramparts for n in loc.neighbors()):
            walls.discard(loc)
            ramparts.add(loc)
    return {
        loc: StructureType.WALL if loc in walls else StructureType.RAMPART
        for loc in cut
    }


def undefended_structures(ctx: PlanningContext) -> List[Location]:
    """Protected structures an attacker could walk to from an exit."""
    plan = ctx.plan
    line = {loc for loc, item in plan.structures() if item.structure_type in LINE_TYPES}
    blocked = line | set(ctx.analysis.points_of_interest)
    dist = flood_fill(ctx.grid, ctx.grid.exits(), blocked=blocked)
    remote = remote_area(ctx, int(ctx.config["defense"]["remote_range"]))
    return [
        loc for loc, item in plan.structures()
        if item.structure_type not in LINE_TYPES
        and loc not in remote
        and _defendable(loc)
        and loc not in ctx.analysis.points_of_interest
        and dist[loc.y, loc.x] >= 0
    ]


def place_defense(ctx: PlanningContext):
    """Rampart line stage.

    Raises:
        NoDefensiblePerimeter: If no line can seal the base or a protected
            structure is still open to an exit afterwards.
    """
    if not ctx.config["defense"].get("enabled", True):
        return
    protected = protected_tiles(ctx)
    if not protected or not ctx.grid.exits():
        return

    line = classify_line(ctx, min_cut_tiles(ctx, protected))
    for loc, structure_type in line.items():
        ctx.plan.place(loc, structure_type, ROLE_DEFENSE)

    exposed = undefended_structures(ctx)
    if exposed:
        raise NoDefensiblePerimeter(f"{exposed[0]} is open to an exit")

    walls = sum(1 for t in line.values() if t == StructureType.WALL)
    ctx.plan.infrastructure["defense"] = {"ramparts": len(line) - walls, "walls": walls}
    if DEBUG:
        print(f"[DEBUG] rampart line: {len(line) - walls} ramparts, {walls} walls")
