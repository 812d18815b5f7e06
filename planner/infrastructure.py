"""
Point infrastructure placement.

Every source and the controller get a container, a link when the link budget
allows it, and a reserved road stub that later becomes a road network anchor.
The mineral gets an extractor on top of it and a container beside it while
the container cap has room; otherwise only its road stub.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from typing import Dict, List, Optional

from .errors import InsufficientSpace
from .layout import ROLE_CONTROLLER, ROLE_MINERAL, ROLE_SOURCE, PlanningContext
from .structures import MAX_TIER, StructureType, caps_from_config, max_structures_at
from .terrain import Location

DEBUG = False


def _nearest_to_hub(ctx: PlanningContext, tiles: List[Location]) -> Optional[Location]:
    """Tile with the shortest hub walking distance, ties in row-major order."""
    if not tiles:
        return None
    return min(tiles, key=lambda loc: (ctx.hub_distance_at(loc), loc.index))


def _approach_distance(ctx: PlanningContext, point: Location) -> int:
    """Hub walking distance to the closest tile next to a point of interest."""
    return min((ctx.hub_distance_at(loc) for loc in point.neighbors()), default=10 ** 6)


def _container_ok(ctx: PlanningContext, loc: Location) -> bool:
    # Containers may sit outside the build border but never on the edge row
    return ctx.is_road_allowed(loc) and not ctx.plan.is_claimed(loc)


def _tiles_around(point: Location, max_range: int) -> List[Location]:
    result = []
    for dy in range(-max_range, max_range + 1):
        for dx in range(-max_range, max_range + 1):
            if dx == 0 and dy == 0:
                continue
            loc = point.offset(dx, dy)
            if loc.in_room():
                result.append(loc)
    return sorted(result)


def _place_stub(ctx: PlanningContext, container: Location) -> Location:
    """Reserve the road stub next to ``container`` and register it as an anchor.

    Falls back to the container tile itself (containers take roads) when every
    neighbour is taken.
    """
    free = [
        loc for loc in container.neighbors()
        if ctx.is_road_allowed(loc) and not ctx.plan.is_claimed(loc)
    ]
    stub = _nearest_to_hub(ctx, free) or container
    if stub != container:
        ctx.plan.reserve(stub)
    ctx.plan.add_anchor(stub)
    return stub


def _place_bare_stub(ctx: PlanningContext, point: Location) -> Dict[str, Optional[Location]]:
    """Road stub next to a point that gets no container.

    Raises:
        InsufficientSpace: If no neighbour of the point can take a road.
    """
    free = [loc for loc in point.neighbors() if _container_ok(ctx, loc)]
    stub = _nearest_to_hub(ctx, free)
    if stub is None:
        raise InsufficientSpace("mineral_infrastructure", 0, 1)
    ctx.plan.reserve(stub)
    ctx.plan.add_anchor(stub)
    if DEBUG:
        print(f"[DEBUG] container cap reached, bare stub {stub} for {point}")
    return {"point": point, "container": None, "link": None, "stub": stub}


def _place_link(ctx: PlanningContext, container: Location, role: str) -> Optional[Location]:
    budget = ctx.plan.infrastructure.get("link_budget", 0)
    if budget <= 0:
        return None
    tiles = [loc for loc in container.neighbors() if ctx.is_buildable(loc)]
    link = _nearest_to_hub(ctx, tiles)
    if link is None:
        return None
    ctx.plan.place(link, StructureType.LINK, role)
    ctx.plan.infrastructure["link_budget"] = budget - 1
    return link


def _place_point(
    ctx: PlanningContext,
    point: Location,
    role: str,
    container_range: int,
    with_link: bool,
    stage: str,
) -> Dict[str, Optional[Location]]:
    tiles = [loc for loc in _tiles_around(point, container_range) if _container_ok(ctx, loc)]
    container = _nearest_to_hub(ctx, tiles)
    if container is None:
        raise InsufficientSpace(stage, 0, 1)
    ctx.plan.place(container, StructureType.CONTAINER, role)

    link = _place_link(ctx, container, role) if with_link else None
    stub = _place_stub(ctx, container)
    if DEBUG:
        print(f"[DEBUG] {role} {point}: container {container} link {link} stub {stub}")
    return {"point": point, "container": container, "link": link, "stub": stub}


def place_point_infrastructure(ctx: PlanningContext):
    """Containers, links and road stubs for sources, controller and mineral.

    Sources are handled first (closest to the hub first) so they win the link
    budget over the controller.

    Raises:
        InsufficientSpace: If a source or the controller has no free tile for
            its container.
    """
    opts = ctx.config["infrastructure"]
    plan = ctx.plan
    plan.infrastructure.setdefault("link_budget", int(opts["link_budget"]))

    sources = sorted(ctx.room.get_sources(), key=lambda s: (_approach_distance(ctx, s), s.index))
    plan.infrastructure["sources"] = [
        _place_point(ctx, source, ROLE_SOURCE, 1, True, "source_infrastructure")
        for source in sources
    ]

    controller = ctx.room.get_controller()
    if controller is not None:
        plan.infrastructure["controller"] = _place_point(
            ctx, controller, ROLE_CONTROLLER, int(opts["controller_range"]), True,
            "controller_infrastructure",
        )

    mineral = ctx.room.get_mineral()
    if mineral is not None and opts.get("mineral", True):
        plan.place(mineral.location, StructureType.EXTRACTOR, ROLE_MINERAL)
        caps = caps_from_config(ctx.config["tiers"].get("caps"))
        if plan.count(StructureType.CONTAINER) < max_structures_at(StructureType.CONTAINER, MAX_TIER, caps):
            refs = _place_point(ctx, mineral.location, ROLE_MINERAL, 1, False, "mineral_infrastructure")
        else:
            refs = _place_bare_stub(ctx, mineral.location)
        refs["extractor"] = mineral.location
        plan.infrastructure["mineral"] = refs
