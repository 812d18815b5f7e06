"""
Working layout of one planning candidate.

A CandidatePlan is the mutable RoomItem grid a single candidate builds up
stage by stage. PlanningContext bundles it with the read-only room data so
every stage is a plain function of one context value.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import numpy as np

from .analysis import RoomAnalysis
from .room_data import RoomDataSource
from .structures import (
    NON_BLOCKING,
    ROAD_COMPATIBLE,
    StructureType,
    parse_structure_type,
)
from .terrain import Location, TerrainGrid, flood_fill

# =========================
# Roles (placement categories)
# =========================

ROLE_HUB = "hub"
ROLE_DEFENSE = "defense"
ROLE_SOURCE = "source"
ROLE_CONTROLLER = "controller"
ROLE_MINERAL = "mineral"
ROLE_LAB = "lab"
ROLE_EXTENSION = "extension"
ROLE_UTILITY = "utility"
ROLE_ROAD = "road"


class TileContents:
    """Read helpers shared by the mutable and the frozen tile records."""

    @property
    def is_blocking(self) -> bool:
        return self.structure_type is not None and self.structure_type not in NON_BLOCKING

    def types(self) -> List[StructureType]:
        """Structure types present on the tile, road last."""
        result = []
        if self.structure_type is not None:
            result.append(self.structure_type)
        if self.road:
            result.append(StructureType.ROAD)
        return result

    def tier_of(self, structure_type: StructureType) -> Optional[int]:
        if structure_type == StructureType.ROAD and self.road:
            return self.road_tier
        if structure_type == self.structure_type:
            return self.tier
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "structure_type": self.structure_type.value if self.structure_type else None,
            "road": self.road,
            "tier": self.tier,
            "road_tier": self.road_tier,
            "role": self.role,
            "order": self.order,
        }


@dataclass
class RoomItem(TileContents):
    """What is planned on one tile."""

    structure_type: Optional[StructureType] = None
    road: bool = False
    tier: Optional[int] = None
    road_tier: Optional[int] = None
    role: str = ""
    order: int = 0

    def freeze(self) -> "PlannedItem":
        return PlannedItem(
            self.structure_type, self.road, self.tier, self.road_tier, self.role, self.order
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoomItem":
        raw_type = data.get("structure_type")
        return cls(
            structure_type=parse_structure_type(raw_type) if raw_type else None,
            road=bool(data.get("road", False)),
            tier=data.get("tier"),
            road_tier=data.get("road_tier"),
            role=data.get("role", ""),
            order=int(data.get("order", 0)),
        )


@dataclass(frozen=True)
class PlannedItem(TileContents):
    """Read-only RoomItem held by a finalized plan."""

    structure_type: Optional[StructureType] = None
    road: bool = False
    tier: Optional[int] = None
    road_tier: Optional[int] = None
    role: str = ""
    order: int = 0


@dataclass(frozen=True)
class Substitution:
    """Stand-in built on a planned tile until the planned structure unlocks."""

    location: Location
    structure_type: StructureType
    active_from: int
    replaced_at: int

    def active(self, tier: int) -> bool:
        return self.active_from <= tier < self.replaced_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location.pack(),
            "structure_type": self.structure_type.value,
            "active_from": self.active_from,
            "replaced_at": self.replaced_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Substitution":
        return cls(
            Location.unpack(data["location"]),
            parse_structure_type(data["structure_type"]),
            int(data["active_from"]),
            int(data["replaced_at"]),
        )


def _loc_list(locs) -> List[int]:
    return [loc.pack() for loc in locs]


def _from_loc_list(packed) -> List[Location]:
    return [Location.unpack(p) for p in packed]


class CandidatePlan:
    """Mutable RoomItem grid plus the references later stages need."""

    def __init__(self, hub: Optional[Location] = None, variant: int = 0):
        self.hub = hub
        self.variant = variant
        self.items: Dict[Location, RoomItem] = {}
        self.anchors: List[Location] = []
        self.reserved: Set[Location] = set()
        self.network_roads: Set[Location] = set()
        self.road_edges: List[Tuple[Location, Location]] = []
        self.infrastructure: Dict[str, Any] = {}
        self.substitutions: List[Substitution] = []
        self._next_order = 0

    # =========================
    # Mutation
    # =========================

    def place(self, loc: Location, structure_type: StructureType, role: str,
              tier: Optional[int] = None) -> RoomItem:
        """Put a structure (or road) on ``loc``.

        Raises:
            ValueError: If the tile already holds an incompatible structure.
        """
        if structure_type == StructureType.ROAD:
            return self.add_road(loc)

        item = self.items.get(loc)
        if item is not None and item.structure_type is not None:
            raise ValueError(f"{loc} already holds {item.structure_type.value}")
        if item is not None and item.road and structure_type not in ROAD_COMPATIBLE:
            raise ValueError(f"{structure_type.value} cannot share {loc} with a road")

        if item is None:
            item = RoomItem()
            self.items[loc] = item
        item.structure_type = structure_type
        item.tier = tier
        item.role = role
        item.order = self._next_order
        self._next_order += 1
        self.reserved.discard(loc)
        return item

    def add_road(self, loc: Location) -> RoomItem:
        item = self.items.get(loc)
        if item is None:
            item = RoomItem(role=ROLE_ROAD, order=self._next_order)
            self._next_order += 1
            self.items[loc] = item
        elif item.structure_type is not None and item.structure_type not in ROAD_COMPATIBLE:
            raise ValueError(f"Road cannot share {loc} with {item.structure_type.value}")
        item.road = True
        return item

    def remove_road(self, loc: Location):
        item = self.items.get(loc)
        if item is None or not item.road:
            return
        item.road = False
        item.road_tier = None
        if item.structure_type is None:
            del self.items[loc]

    def add_anchor(self, loc: Location):
        if loc not in self.anchors:
            self.anchors.append(loc)

    def reserve(self, loc: Location):
        self.reserved.add(loc)

    # =========================
    # Queries
    # =========================

    def is_claimed(self, loc: Location) -> bool:
        return loc in self.items or loc in self.reserved

    def has_road(self, loc: Location) -> bool:
        item = self.items.get(loc)
        return item is not None and item.road

    def is_blocking(self, loc: Location) -> bool:
        item = self.items.get(loc)
        return item is not None and item.is_blocking

    def structures(self) -> Iterator[Tuple[Location, RoomItem]]:
        """Tiles holding a non-road structure, in row-major order."""
        for loc in sorted(self.items):
            item = self.items[loc]
            if item.structure_type is not None:
                yield loc, item

    def road_tiles(self) -> Set[Location]:
        return {loc for loc, item in self.items.items() if item.road}

    def blocking_tiles(self) -> Set[Location]:
        return {loc for loc, item in self.items.items() if item.is_blocking}

    def count(self, structure_type: StructureType) -> int:
        if structure_type == StructureType.ROAD:
            return len(self.road_tiles())
        return sum(1 for item in self.items.values() if item.structure_type == structure_type)

    def locations_of(self, structure_type: StructureType) -> List[Location]:
        return [loc for loc, item in self.structures() if item.structure_type == structure_type]

    # =========================
    # Serialization
    # =========================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hub": self.hub.pack() if self.hub else None,
            "variant": self.variant,
            "items": [
                dict(self.items[loc].to_dict(), location=loc.pack())
                for loc in sorted(self.items)
            ],
            "anchors": _loc_list(self.anchors),
            "reserved": _loc_list(sorted(self.reserved)),
            "network_roads": _loc_list(sorted(self.network_roads)),
            "road_edges": [[a.pack(), b.pack()] for a, b in self.road_edges],
            "infrastructure": pack_refs(self.infrastructure),
            "substitutions": [s.to_dict() for s in self.substitutions],
            "next_order": self._next_order,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CandidatePlan":
        hub = data.get("hub")
        plan = cls(Location.unpack(hub) if hub is not None else None, data.get("variant", 0))
        for raw in data.get("items", []):
            plan.items[Location.unpack(raw["location"])] = RoomItem.from_dict(raw)
        plan.anchors = _from_loc_list(data.get("anchors", []))
        plan.reserved = set(_from_loc_list(data.get("reserved", [])))
        plan.network_roads = set(_from_loc_list(data.get("network_roads", [])))
        plan.road_edges = [
            (Location.unpack(a), Location.unpack(b)) for a, b in data.get("road_edges", [])
        ]
        plan.infrastructure = unpack_refs(data.get("infrastructure", {}))
        plan.substitutions = [Substitution.from_dict(s) for s in data.get("substitutions", [])]
        plan._next_order = int(data.get("next_order", len(plan.items)))
        return plan


# Infrastructure references are nested dicts/lists whose leaves are Locations
# (or None). They are stored as {"loc": packed} markers so plain ints survive.

def pack_refs(value):
    if isinstance(value, Location):
        return {"loc": value.pack()}
    if isinstance(value, dict):
        return {k: pack_refs(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [pack_refs(v) for v in value]
    return value


def unpack_refs(value):
    if isinstance(value, dict):
        if set(value) == {"loc"}:
            return Location.unpack(value["loc"])
        return {k: unpack_refs(v) for k, v in value.items()}
    if isinstance(value, list):
        return [unpack_refs(v) for v in value]
    return value


# =========================
# Planning Context
# =========================

@dataclass
class PlanningContext:
    """Everything one candidate run reads and the one plan it writes."""

    room: RoomDataSource
    analysis: RoomAnalysis
    config: Dict[str, Any]
    plan: CandidatePlan
    _hub_distance: Optional[np.ndarray] = field(default=None, repr=False)

    @property
    def grid(self) -> TerrainGrid:
        return self.analysis.grid

    @property
    def hub(self) -> Location:
        return self.plan.hub

    def hub_distance(self) -> np.ndarray:
        """Walking distance from the hub over terrain, points of interest blocked."""
        if self._hub_distance is None:
            self._hub_distance = flood_fill(
                self.grid, [self.plan.hub],
                blocked=set(self.analysis.points_of_interest),
            )
        return self._hub_distance

    def hub_distance_at(self, loc: Location) -> int:
        """Hub walking distance, a large value for unreached tiles."""
        d = int(self.hub_distance()[loc.y, loc.x])
        return d if d >= 0 else 10 ** 6

    def is_buildable(self, loc: Location) -> bool:
        """Free interior tile where a non-road structure may go."""
        return (
            loc.in_room()
            and loc.is_interior()
            and self.grid.is_walkable(loc)
            and loc not in self.analysis.points_of_interest
            and loc not in self.analysis.exit_setback
            and not self.plan.is_claimed(loc)
        )

    def is_road_allowed(self, loc: Location) -> bool:
        """Tile a road may cross: off the room edge, walkable and free of blockers."""
        return (
            loc.in_room()
            and not loc.is_edge()
            and self.grid.is_walkable(loc)
            and loc not in self.analysis.points_of_interest
            and not self.plan.is_blocking(loc)
        )
