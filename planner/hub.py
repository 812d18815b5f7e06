"""
Hub placement.

The hub is the stamp of core structures (storage, terminal, spawn, link and
friends) that everything else is laid out around. This module filters hub
candidates by footprint and clearance rules, ranks them by weighted walking
distance to the room's points of interest and stamps the winner into a
candidate plan.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import math
from typing import Any, Dict, Iterable, List, Optional

from .analysis import RoomAnalysis
from .candidates import HUB_VARIANTS, HubCandidate, footprint_clear
from .errors import NoValidHubPlacement
from .layout import ROLE_HUB, PlanningContext
from .structures import StructureType
from .terrain import ROOM_SIZE, UNREACHED, Location

DEBUG = False


def edge_clearance(loc: Location) -> int:
    """Tiles between ``loc`` and the nearest room edge."""
    return min(loc.x, loc.y, ROOM_SIZE - 1 - loc.x, ROOM_SIZE - 1 - loc.y)


def is_valid_hub(candidate: HubCandidate, analysis: RoomAnalysis, config: Dict[str, Any]) -> bool:
    """Footprint fits, avoids walls and keeps clear of edges and exits."""
    stamp = candidate.stamp
    if not footprint_clear(stamp, candidate.anchor, analysis):
        return False
    clearance = int(config["hub"]["edge_clearance"])
    for loc in stamp.footprint(candidate.anchor):
        if edge_clearance(loc) < clearance:
            return False
        if loc in analysis.exit_setback:
            return False
    return True


def weighted_distance(anchor: Location, analysis: RoomAnalysis, config: Dict[str, Any]) -> float:
    """Weighted sum of walking distances from ``anchor`` to every point of interest.

    Returns ``inf`` when any weighted point cannot be walked to.
    """
    weights = config["hub_weights"]
    total = 0.0
    for kind, maps in analysis.poi_distances().items():
        weight = float(weights.get(kind, 0.0))
        if weight == 0:
            continue
        for dist in maps:
            d = int(dist[anchor.y, anchor.x])
            if d == UNREACHED:
                return math.inf
            total += weight * d
    return total


def footprint_cost(candidate: HubCandidate, analysis: RoomAnalysis) -> float:
    return sum(analysis.grid.movement_cost(loc) for loc in candidate.stamp.footprint(candidate.anchor))


def rank_hub_candidates(
    candidates: Iterable[HubCandidate],
    analysis: RoomAnalysis,
    config: Dict[str, Any],
) -> List[HubCandidate]:
    """Valid candidates, best first.

    Order: weighted distance, then footprint movement cost, then generation
    order.
    """
    ranked = []
    for candidate in candidates:
        if not is_valid_hub(candidate, analysis, config):
            if DEBUG:
                print(f"[DEBUG] hub {candidate.anchor} v{candidate.variant} rejected")
            continue
        distance = weighted_distance(candidate.anchor, analysis, config)
        if math.isinf(distance):
            continue
        ranked.append((distance, footprint_cost(candidate, analysis), candidate.generation, candidate))
    ranked.sort(key=lambda entry: entry[:3])
    return [entry[3] for entry in ranked]


def forced_candidates(config: Dict[str, Any]) -> Optional[List[HubCandidate]]:
    """Every orientation at the configured forced hub position, if one is set."""
    forced = config["hub"].get("forced")
    if forced is None:
        return None
    anchor = Location.from_any(forced)
    return [HubCandidate(anchor, i, 1.0, i) for i in range(len(HUB_VARIANTS))]


def select_hub(
    candidates: Iterable[HubCandidate],
    analysis: RoomAnalysis,
    config: Dict[str, Any],
) -> HubCandidate:
    """Best valid hub candidate.

    Raises:
        NoValidHubPlacement: If no candidate satisfies the footprint and
            clearance rules.
    """
    ranked = rank_hub_candidates(candidates, analysis, config)
    if not ranked:
        raise NoValidHubPlacement("No hub position fits the footprint and clearance rules")
    return ranked[0]


def place_hub(ctx: PlanningContext, candidate: HubCandidate):
    """Stamp the hub into the candidate plan.

    Required placements always go down. Optional roads are laid only where a
    road is allowed and the tile is still free.
    """
    plan = ctx.plan
    plan.hub = candidate.anchor
    plan.variant = candidate.variant

    for p in candidate.stamp.placements:
        loc = candidate.anchor.offset(p.dx, p.dy)
        if not p.required:
            if not loc.in_room() or not ctx.is_road_allowed(loc) or plan.is_claimed(loc):
                continue
        if p.structure_type == StructureType.ROAD:
            plan.add_road(loc)
        else:
            plan.place(loc, p.structure_type, ROLE_HUB)

    plan.add_anchor(candidate.anchor)
    plan.infrastructure["hub"] = {
        "anchor": candidate.anchor,
        "storage": plan.locations_of(StructureType.STORAGE)[0],
        "link": plan.locations_of(StructureType.LINK)[0],
    }
