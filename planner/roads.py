"""
Road network synthesis and pruning.

The builder grows an approximate minimum-cost Steiner tree: starting from the
hub it repeatedly runs a multi-source Dijkstra out of everything already
connected and joins the nearest unconnected anchor along its cheapest path.
The pruner then drops road tiles that no anchor pair depends on, checking
each removal locally instead of re-walking the whole network.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import heapq
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from .errors import UnreachableStructure
from .layout import PlanningContext
from .terrain import Location, TerrainGrid

DEBUG = False


@dataclass
class RoadNetwork:
    root: Location
    anchors: List[Location]
    tiles: Set[Location] = field(default_factory=set)
    edges: List[Tuple[Location, Location]] = field(default_factory=list)
    paths: Dict[Location, List[Location]] = field(default_factory=dict)

    def path_length(self, anchor: Location) -> int:
        """Steps taken to join ``anchor`` to the network."""
        path = self.paths.get(anchor)
        return len(path) - 1 if path else 0


# =========================
# Builder
# =========================

def _cheapest_join(
    grid: TerrainGrid,
    connected: Set[Location],
    pending: Set[Location],
    passable: Callable[[Location], bool],
    existing_roads: Set[Location],
    swamp_cost: Optional[float] = None,
) -> Optional[List[Location]]:
    """Cheapest path from the connected set to the nearest pending anchor.

    Returns:
        Tiles from a connected tile to the anchor (inclusive), or None.
    """
    best: Dict[Location, float] = {}
    prev: Dict[Location, Location] = {}
    heap = []
    for loc in connected:
        best[loc] = 0
        heap.append((0, loc.index, loc))
    heapq.heapify(heap)

    while heap:
        cost, _, current = heapq.heappop(heap)
        if cost > best.get(current, math.inf):
            continue
        if current in pending:
            path = [current]
            while path[-1] not in connected:
                path.append(prev[path[-1]])
            path.reverse()
            return path
        for nxt in current.neighbors():
            if nxt not in pending and not passable(nxt):
                continue
            if nxt in existing_roads:
                step = 0
            elif swamp_cost is not None and grid.is_swamp(nxt):
                step = swamp_cost
            else:
                step = grid.movement_cost(nxt)
            if math.isinf(step):
                continue
            new_cost = cost + step
            if new_cost < best.get(nxt, math.inf):
                best[nxt] = new_cost
                prev[nxt] = current
                heapq.heappush(heap, (new_cost, nxt.index, nxt))
    return None


def connect_anchors(
    grid: TerrainGrid,
    root: Location,
    anchors: Iterable[Location],
    passable: Callable[[Location], bool],
    existing_roads: Optional[Set[Location]] = None,
    swamp_cost: Optional[float] = None,
) -> RoadNetwork:
    """Join every anchor to ``root`` through one connected set of road tiles.

    Args:
        grid: Room terrain, supplies step costs.
        root: Network root (the hub tile); never itself part of ``tiles``.
        anchors: Tiles that must end up connected.
        passable: Whether a road may cross a tile.
        existing_roads: Road tiles already planned; stepping onto them is free.
        swamp_cost: Step cost override for swamp tiles.

    Returns:
        RoadNetwork with the union of all joining paths.

    Raises:
        UnreachableStructure: If some anchor cannot be joined.
    """
    existing_roads = existing_roads or set()
    ordered = [a for a in dict.fromkeys(anchors) if a != root]
    network = RoadNetwork(root=root, anchors=ordered)
    connected: Set[Location] = {root}
    pending: Set[Location] = set(ordered)

    while pending:
        path = _cheapest_join(grid, connected, pending, passable, existing_roads, swamp_cost)
        if path is None:
            raise UnreachableStructure(min(pending), "cannot be joined to the road network")
        anchor = path[-1]
        network.paths[anchor] = path
        for a, b in zip(path, path[1:]):
            network.edges.append((a, b))
        network.tiles.update(path[1:])
        connected.update(path)
        pending -= connected
        if DEBUG:
            print(f"[DEBUG] joined {anchor} in {len(path) - 1} steps")

    return network


def build_roads(ctx: PlanningContext) -> RoadNetwork:
    """Road builder stage: lay the network for every anchor of the plan."""
    plan = ctx.plan
    existing = plan.road_tiles()
    network = connect_anchors(
        ctx.grid, plan.hub, plan.anchors, ctx.is_road_allowed, existing,
        swamp_cost=float(ctx.config["roads"]["swamp_cost"]),
    )
    added = network.tiles - existing
    for loc in sorted(network.tiles):
        plan.add_road(loc)
    plan.network_roads = set(added)
    plan.road_edges = list(network.edges)
    return network


# =========================
# Pruner
# =========================

def _anchor_depth(roads: Set[Location], anchors: Set[Location]) -> Dict[Location, int]:
    """Steps from each road tile to the nearest anchor through the road graph."""
    depth = {a: 0 for a in anchors if a in roads}
    queue = deque(sorted(depth))
    while queue:
        current = queue.popleft()
        for nxt in current.neighbors():
            if nxt in roads and nxt not in depth:
                depth[nxt] = depth[current] + 1
                queue.append(nxt)
    return depth


def _locally_redundant(tile: Location, roads: Set[Location], radius: int) -> bool:
    """True when every road neighbour of ``tile`` stays connected without it.

    The search is confined to the window of Chebyshev ``radius`` around the
    tile, so a False answer only means no local detour exists.
    """
    neighbours = [n for n in tile.neighbors() if n in roads]
    if len(neighbours) <= 1:
        return True

    targets = set(neighbours[1:])
    seen = {neighbours[0]}
    queue = deque([neighbours[0]])
    while queue and targets:
        current = queue.popleft()
        for nxt in current.neighbors():
            if nxt in seen or nxt == tile or nxt not in roads:
                continue
            if nxt.distance_to(tile) > radius:
                continue
            seen.add(nxt)
            targets.discard(nxt)
            queue.append(nxt)
    return not targets


def prune_roads(
    tiles: Set[Location],
    anchors: Iterable[Location],
    fixed: Optional[Set[Location]] = None,
    radius: int = 4,
) -> Set[Location]:
    """Drop road tiles that no pair of anchors needs.

    Only ``tiles`` are candidates for removal; ``anchors`` and ``fixed`` road
    tiles stay and count as part of the graph. Candidates are tested farthest
    from any anchor first and passes repeat until one removes nothing.

    Returns:
        The surviving subset of ``tiles``.
    """
    anchors = set(anchors)
    fixed = set(fixed or ())
    roads = set(tiles) | fixed | anchors
    removable = set(tiles) - fixed - anchors

    depth = _anchor_depth(roads, anchors)
    order = sorted(removable, key=lambda loc: (-depth.get(loc, 10 ** 6), loc.index))

    changed = True
    while changed:
        changed = False
        for tile in order:
            if tile not in roads:
                continue
            if _locally_redundant(tile, roads, radius):
                roads.discard(tile)
                changed = True
    return roads & set(tiles)


def anchors_connected(tiles: Iterable[Location], anchors: Iterable[Location]) -> bool:
    """Full check: every anchor is reachable from the first through ``tiles``."""
    anchors = list(dict.fromkeys(anchors))
    if len(anchors) <= 1:
        return True
    nodes = set(tiles) | set(anchors)
    seen = {anchors[0]}
    queue = deque([anchors[0]])
    while queue:
        current = queue.popleft()
        for nxt in current.neighbors():
            if nxt in nodes and nxt not in seen:
                seen.add(nxt)
                queue.append(nxt)
    return all(a in seen for a in anchors)


def prune_plan_roads(ctx: PlanningContext) -> Set[Location]:
    """Road pruner stage: prune the network roads of the plan and verify the result.

    Raises:
        UnreachableStructure: If the pruned roads no longer join every anchor.
    """
    plan = ctx.plan
    all_roads = plan.road_tiles()
    fixed = all_roads - plan.network_roads
    anchors = [plan.hub] + list(plan.anchors)
    kept = prune_roads(
        plan.network_roads, anchors, fixed,
        radius=int(ctx.config["roads"]["prune_radius"]),
    )
    for loc in sorted(plan.network_roads - kept):
        plan.remove_road(loc)
    plan.network_roads = kept

    remaining = plan.road_tiles()
    nodes = remaining | set(anchors)
    plan.road_edges = [(a, b) for a, b in plan.road_edges if a in nodes and b in nodes]

    if not anchors_connected(remaining, anchors):
        raise UnreachableStructure(plan.hub, "road network split after pruning")
    return kept
