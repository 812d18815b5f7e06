"""
Tier (RCL) assignment.

Structures of one type compete for the slots each tier unlocks. They are
queued by category priority, then placement order, then hub distance, and
each takes the lowest tier from which a slot stays free at every higher
tier. A tier's slots are handed out strictly in queue order, so a later
structure can never push an earlier one to a higher tier.

Containers share one flat cap with the storage stand-in, so they are
allocated last: source and controller containers first, then the stand-in
if a slot is free for every tier it is up, then mineral containers from the
extractor tier.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import InsufficientSpace
from .layout import ROLE_MINERAL, CandidatePlan, PlanningContext, RoomItem, Substitution
from .structures import (
    IMPOSSIBLE_TIER,
    MAX_TIER,
    TIERED_TYPES,
    StructureType,
    caps_from_config,
    max_structures_at,
)
from .terrain import Location

DEFAULT_DEFENSE_TIER = 2

DEBUG = False


class TierSlots:
    """Running count of one structure type per tier against its caps."""

    def __init__(self, structure_type: StructureType,
                 caps: Optional[Dict[StructureType, List[int]]] = None):
        self.structure_type = structure_type
        self.limit = [max_structures_at(structure_type, t, caps) for t in range(MAX_TIER + 1)]
        self.used = [0] * (MAX_TIER + 1)

    def free(self, first: int, last: int = MAX_TIER) -> bool:
        """True when every tier in ``first..last`` has a slot left."""
        return all(self.used[t] < self.limit[t] for t in range(first, last + 1))

    def take(self, first: int, last: int = MAX_TIER):
        for t in range(first, last + 1):
            self.used[t] += 1

    def lowest_tier(self, floor: int = 1) -> int:
        """Lowest tier >= ``floor`` that can hold one more from there on."""
        for tier in range(max(1, floor), MAX_TIER + 1):
            if self.free(tier):
                return tier
        return IMPOSSIBLE_TIER


def priority_key(
    category_priority: List[str],
    distance: Callable[[Location], int],
) -> Callable[[Tuple[Location, RoomItem]], Tuple]:
    """Sort key placing high-priority categories and early placements first."""
    rank = {name: i for i, name in enumerate(category_priority)}
    fallback = len(rank)

    def key(entry: Tuple[Location, RoomItem]) -> Tuple:
        loc, item = entry
        return (rank.get(item.role, fallback), item.order, distance(loc), loc.index)

    return key


def assign_capped_tiers(
    entries: List[Tuple[Location, RoomItem]],
    structure_type: StructureType,
    caps: Optional[Dict[StructureType, List[int]]] = None,
    floors: Optional[Dict[Location, int]] = None,
    slots: Optional[TierSlots] = None,
) -> List[int]:
    """Give each already-ordered entry its tier; returns the tiers in order.

    Args:
        entries: (location, item) pairs in queue order.
        structure_type: Type shared by every entry.
        caps: Optional replacement caps table.
        floors: Lowest tier allowed per location.
        slots: Slot counter to continue from, for types allocated in passes.

    Raises:
        InsufficientSpace: If an entry finds no tier with a free slot.
    """
    slots = slots or TierSlots(structure_type, caps)
    floors = floors or {}
    tiers = []
    for n, (loc, item) in enumerate(entries, start=1):
        tier = slots.lowest_tier(floors.get(loc, 1))
        if tier >= IMPOSSIBLE_TIER:
            raise InsufficientSpace(f"tiers:{structure_type.value}", n - 1, n)
        slots.take(tier)
        item.tier = tier
        tiers.append(tier)
    return tiers


def assign_container_tiers(
    plan: CandidatePlan,
    caps: Dict[StructureType, List[int]],
    key: Callable[[Tuple[Location, RoomItem]], Tuple],
):
    """Tier containers and decide the storage stand-in.

    Raises:
        InsufficientSpace: If the containers alone exceed the cap.
    """
    slots = TierSlots(StructureType.CONTAINER, caps)
    containers = [
        (loc, item) for loc, item in plan.structures()
        if item.structure_type == StructureType.CONTAINER
    ]
    regular = sorted((e for e in containers if e[1].role != ROLE_MINERAL), key=key)
    mineral = sorted((e for e in containers if e[1].role == ROLE_MINERAL), key=key)
    assign_capped_tiers(regular, StructureType.CONTAINER, caps, slots=slots)

    plan.substitutions = []
    for loc in plan.locations_of(StructureType.STORAGE):
        storage_tier = plan.items[loc].tier or 1
        if storage_tier > 1 and slots.free(1, storage_tier - 1):
            slots.take(1, storage_tier - 1)
            plan.substitutions.append(
                Substitution(loc, StructureType.CONTAINER, 1, storage_tier)
            )
        elif DEBUG:
            print(f"[DEBUG] No container slot for the stand-in at {loc}")

    # Mineral containers are useless before the extractor
    extractor_tier = min(
        (item.tier for _, item in plan.structures()
         if item.structure_type == StructureType.EXTRACTOR and item.tier),
        default=1,
    )
    floors = {loc: extractor_tier for loc, _ in mineral}
    assign_capped_tiers(mineral, StructureType.CONTAINER, caps, floors, slots)


def assign_tiers(
    plan: CandidatePlan,
    config: Dict[str, Any],
    distance: Optional[Callable[[Location], int]] = None,
):
    """Fill in ``tier`` and ``road_tier`` for every item of the plan.

    Args:
        plan: Candidate plan, modified in place.
        config: Full planner config.
        distance: Hub distance used as the third sort key.
    """
    opts = config["tiers"]
    caps = caps_from_config(opts.get("caps"))
    distance = distance or (lambda loc: plan.hub.distance_to(loc) if plan.hub else 0)
    key = priority_key(list(opts["category_priority"]), distance)

    grouped: Dict[StructureType, List[Tuple[Location, RoomItem]]] = defaultdict(list)
    for loc, item in plan.structures():
        if item.structure_type in TIERED_TYPES:
            grouped[item.structure_type].append((loc, item))
        elif item.structure_type != StructureType.CONTAINER:
            item.tier = DEFAULT_DEFENSE_TIER

    for structure_type in sorted(grouped, key=lambda t: t.value):
        entries = sorted(grouped[structure_type], key=key)
        assign_capped_tiers(entries, structure_type, caps)

    assign_container_tiers(plan, caps, key)

    default_road = int(opts["default_road_tier"])
    for loc, item in plan.items.items():
        if not item.road:
            continue
        nearby = [
            plan.items[n].tier for n in loc.neighbors()
            if n in plan.items
            and plan.items[n].structure_type is not None
            and plan.items[n].tier is not None
        ]
        if item.structure_type is not None and item.tier is not None:
            nearby.append(item.tier)
        item.road_tier = min(nearby) if nearby else default_road


def assign_plan_tiers(ctx: PlanningContext):
    """Tier assignment stage."""
    assign_tiers(ctx.plan, ctx.config, ctx.hub_distance_at)
