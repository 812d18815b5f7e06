"""
Finalized plans and the diff engine.

A Plan is the frozen winner of a planning run. It never changes after
construction; executors ask it what to build or destroy at a given tier by
handing it a snapshot of what currently exists.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple, Union

from .layout import CandidatePlan, PlannedItem, RoomItem, Substitution, pack_refs, unpack_refs
from .scoring import PlanScore, bounding_region
from .structures import (
    BUILD_PRIORITY,
    MAX_TIER,
    StructureType,
    parse_structure_type,
)
from .terrain import Location

# =========================
# Operations
# =========================


@dataclass(frozen=True)
class CreateSite:
    location: Location
    structure_type: StructureType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": "create_site",
            "x": self.location.x,
            "y": self.location.y,
            "structure_type": self.structure_type.value,
        }


@dataclass(frozen=True)
class DestroyStructure:
    location: Location
    structure_type: StructureType
    safe_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": "destroy",
            "x": self.location.x,
            "y": self.location.y,
            "structure_type": self.structure_type.value,
            "safe_only": self.safe_only,
        }


PlanOperation = Union[CreateSite, DestroyStructure]


def _frozen(item: Union[RoomItem, PlannedItem]) -> PlannedItem:
    return item if isinstance(item, PlannedItem) else item.freeze()


class Visualizer(Protocol):
    def render(self, location: Location, structure_type: StructureType) -> None:
        ...


# =========================
# Plan
# =========================

class Plan:
    """Immutable construction plan of one room.

    Items are frozen PlannedItem copies behind a read-only mapping; nothing
    on the plan changes after construction.
    """

    def __init__(
        self,
        room_name: str,
        hub: Location,
        items: Mapping[Location, Union[RoomItem, PlannedItem]],
        score: Optional[PlanScore] = None,
        infrastructure: Optional[Dict[str, Any]] = None,
        substitutions: Iterable[Substitution] = (),
    ):
        self._room_name = room_name
        self._hub = hub
        self._items = MappingProxyType({loc: _frozen(items[loc]) for loc in sorted(items)})
        self._score = score or PlanScore(0.0)
        self._infrastructure = copy.deepcopy(infrastructure or {})
        self._substitutions = tuple(substitutions)

    @classmethod
    def from_candidate(cls, room_name: str, candidate: CandidatePlan,
                       score: Optional[PlanScore] = None) -> "Plan":
        """Freeze a finished candidate together with its stand-ins."""
        infrastructure = {
            k: v for k, v in candidate.infrastructure.items() if k != "link_budget"
        }
        return cls(
            room_name, candidate.hub, candidate.items, score, infrastructure,
            candidate.substitutions,
        )

    # =========================
    # Read-only accessors
    # =========================

    @property
    def room_name(self) -> str:
        return self._room_name

    @property
    def hub(self) -> Location:
        return self._hub

    @property
    def items(self) -> Mapping[Location, PlannedItem]:
        return self._items

    @property
    def score(self) -> PlanScore:
        return self._score

    @property
    def infrastructure(self) -> Dict[str, Any]:
        return copy.deepcopy(self._infrastructure)

    @property
    def substitutions(self) -> Tuple[Substitution, ...]:
        return self._substitutions

    @property
    def bounding_region(self) -> Optional[Tuple[int, int, int, int]]:
        return bounding_region(self._items)

    def entries(self, tier: int = MAX_TIER) -> List[Tuple[Location, StructureType, int]]:
        """Every planned (location, type, tier) with tier <= ``tier``, row-major."""
        result = []
        for loc, item in self._items.items():
            for structure_type in item.types():
                t = item.tier_of(structure_type)
                if t is not None and t <= tier:
                    result.append((loc, structure_type, t))
        return result

    def count(self, structure_type: StructureType, tier: int = MAX_TIER) -> int:
        return sum(1 for _, t, _ in self.entries(tier) if t == structure_type)

    def structures_at(self, tier: int) -> Set[Tuple[Location, StructureType]]:
        """What should exist at ``tier``: planned entries plus active stand-ins."""
        wanted = {(loc, t) for loc, t, _ in self.entries(tier)}
        for sub in self._substitutions:
            if sub.active(tier):
                wanted.add((sub.location, sub.structure_type))
        return wanted

    # =========================
    # Diff queries
    # =========================

    def build_order(self, tier: int) -> List[Tuple[Location, StructureType]]:
        """Planned entries for ``tier`` in build order.

        Order: tier ascending, build priority descending, hub distance, then
        row-major. Active stand-ins take the tier they become active at.
        """
        pending = [(loc, t, level) for loc, t, level in self.entries(tier)]
        for sub in self._substitutions:
            if sub.active(tier):
                pending.append((sub.location, sub.structure_type, sub.active_from))
        pending.sort(key=lambda e: (
            e[2],
            -BUILD_PRIORITY.get(e[1], 0),
            self._hub.distance_to(e[0]),
            e[0].index,
        ))
        return [(loc, t) for loc, t, _ in pending]

    def get_build_operations(self, tier: int, existing_structures: Iterable = ()) -> List[CreateSite]:
        """Construction sites still missing at ``tier``.

        Args:
            tier: Current controller tier.
            existing_structures: Snapshot of live structures.

        Returns:
            Ordered CreateSite operations.
        """
        present = {
            (e.location, e.structure_type)
            for e in map(ExistingStructure.coerce, existing_structures)
        }
        return [
            CreateSite(loc, structure_type)
            for loc, structure_type in self.build_order(tier)
            if (loc, structure_type) not in present
        ]

    def get_cleanup_operations(self, tier: int, existing_structures: Iterable = ()) -> List[DestroyStructure]:
        """Live structures that do not belong at ``tier``, in snapshot order.

        ``safe_only`` is set when the structure holds resources, is a stand-in
        being replaced, or is planned for a later tier.
        """
        wanted = self.structures_at(tier)
        ops = []
        for entry in map(ExistingStructure.coerce, existing_structures):
            key = (entry.location, entry.structure_type)
            if key in wanted:
                continue
            item = self._items.get(entry.location)
            planned_later = item is not None and item.tier_of(entry.structure_type) is not None
            replaced = any(
                sub.location == entry.location
                and sub.structure_type == entry.structure_type
                and tier >= sub.replaced_at
                for sub in self._substitutions
            )
            ops.append(DestroyStructure(
                entry.location,
                entry.structure_type,
                entry.has_store or planned_later or replaced,
            ))
        return ops

    def is_complete(self, existing_structures: Iterable = ()) -> bool:
        """True when every structure of the full plan exists."""
        present = {
            (e.location, e.structure_type)
            for e in map(ExistingStructure.coerce, existing_structures)
        }
        return self.structures_at(MAX_TIER) <= present

    def visualize(self, visualizer: Visualizer):
        """One render call per RoomItem, the structure taking precedence over its road."""
        for loc, item in self._items.items():
            structure_type = item.structure_type or StructureType.ROAD
            visualizer.render(loc, structure_type)

    # =========================
    # Serialization
    # =========================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "room": self._room_name,
            "hub": self._hub.pack(),
            "items": [
                dict(item.to_dict(), location=loc.pack())
                for loc, item in self._items.items()
            ],
            "score": self._score.to_dict(),
            "infrastructure": pack_refs(self._infrastructure),
            "substitutions": [s.to_dict() for s in self._substitutions],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        items = {
            Location.unpack(raw["location"]): RoomItem.from_dict(raw)
            for raw in data.get("items", [])
        }
        return cls(
            room_name=data.get("room", ""),
            hub=Location.unpack(data["hub"]),
            items=items,
            score=PlanScore.from_dict(data["score"]) if data.get("score") else None,
            infrastructure=unpack_refs(data.get("infrastructure", {})),
            substitutions=[Substitution.from_dict(s) for s in data.get("substitutions", [])],
        )

    def summary(self) -> Dict[str, Any]:
        """Counts per structure type, for logs and the API."""
        counts: Dict[str, int] = {}
        for _, structure_type, _ in self.entries(MAX_TIER):
            counts[structure_type.value] = counts.get(structure_type.value, 0) + 1
        return {
            "room": self._room_name,
            "hub": self._hub.to_list(),
            "score": self._score.total,
            "counts": counts,
            "bounding_region": self.bounding_region,
        }
