"""
Structure stamps.

A stamp is a fixed set of relative offsets, each carrying a structure type,
that is dropped onto the room as one cluster. Stamps are tried at every
rotation and reflection; identical orientations are collapsed so symmetric
stamps are only tested once.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .structures import StructureType
from .terrain import Location

S = StructureType


@dataclass(frozen=True)
class StampPlacement:
    structure_type: StructureType
    dx: int
    dy: int
    required: bool = True


@dataclass(frozen=True)
class Stamp:
    name: str
    placements: Tuple[StampPlacement, ...]
    min_radius: int

    # =========================
    # Orientation
    # =========================

    def _mapped(self, fn: Callable[[int, int], Tuple[int, int]]) -> "Stamp":
        return Stamp(
            self.name,
            tuple(
                StampPlacement(p.structure_type, *fn(p.dx, p.dy), required=p.required)
                for p in self.placements
            ),
            self.min_radius,
        )

    def rotated(self) -> "Stamp":
        """Rotate 90 degrees clockwise: (dx, dy) -> (-dy, dx)."""
        return self._mapped(lambda dx, dy: (-dy, dx))

    def reflected(self) -> "Stamp":
        """Mirror across the vertical axis: (dx, dy) -> (-dx, dy)."""
        return self._mapped(lambda dx, dy: (-dx, dy))

    def signature(self) -> Tuple:
        return tuple(sorted(
            (p.dx, p.dy, p.structure_type.value, p.required) for p in self.placements
        ))

    def variants(self) -> List["Stamp"]:
        """Up to eight unique orientations, the identity first."""
        result = []
        seen = set()
        base = self
        for mirrored in (False, True):
            current = base.reflected() if mirrored else base
            for _ in range(4):
                sig = current.signature()
                if sig not in seen:
                    seen.add(sig)
                    result.append(current)
                current = current.rotated()
        return result

    # =========================
    # Placement
    # =========================

    def footprint(self, anchor: Location, required_only: bool = True) -> List[Location]:
        return [
            anchor.offset(p.dx, p.dy)
            for p in self.placements
            if p.required or not required_only
        ]

    def structures(self) -> List[StampPlacement]:
        return [p for p in self.placements if p.structure_type != S.ROAD]

    def count(self, structure_type: StructureType) -> int:
        return sum(1 for p in self.placements if p.structure_type == structure_type)

    def fits_at(
        self,
        anchor: Location,
        can_build: Callable[[Location], bool],
        can_road: Callable[[Location], bool],
    ) -> bool:
        """True when every required placement can go down at ``anchor``.

        Optional placements never affect the fit.
        """
        for p in self.placements:
            if not p.required:
                continue
            loc = anchor.offset(p.dx, p.dy)
            if not loc.in_room():
                return False
            check = can_road if p.structure_type == S.ROAD else can_build
            if not check(loc):
                return False
        return True

    def validate(self) -> bool:
        """Sanity check the template itself."""
        if not any(p.required for p in self.placements):
            return False
        seen = set()
        for p in self.placements:
            if p.structure_type == S.ROAD:
                continue
            if (p.dx, p.dy) in seen:
                return False
            seen.add((p.dx, p.dy))
        roads = {(p.dx, p.dy) for p in self.placements if p.structure_type == S.ROAD}
        if roads & seen:
            return False
        return all(
            max(abs(p.dx), abs(p.dy)) <= self.min_radius
            for p in self.placements if p.required
        )


def _stamp(name: str, min_radius: int, required: List[Tuple[StructureType, int, int]],
           optional: Optional[List[Tuple[StructureType, int, int]]] = None) -> Stamp:
    placements = [StampPlacement(t, dx, dy, True) for t, dx, dy in required]
    placements += [StampPlacement(t, dx, dy, False) for t, dx, dy in optional or []]
    return Stamp(name, tuple(placements), min_radius)


# =========================
# Stamp Library
# =========================

# Core cluster around a central filler tile. The filler stands on (0, 0) and
# reaches all seven structures; (-1, -1) is its way in.
HUB_STAMP = _stamp(
    "hub",
    2,
    required=[
        (S.ROAD, 0, 0),
        (S.STORAGE, 0, 1),
        (S.TERMINAL, 1, 0),
        (S.LINK, 0, -1),
        (S.SPAWN, -1, 0),
        (S.POWER_SPAWN, -1, 1),
        (S.FACTORY, 1, 1),
        (S.NUKER, 1, -1),
        (S.ROAD, -1, -1),
    ],
    optional=[
        (S.ROAD, dx, dy)
        for dy in range(-2, 3)
        for dx in range(-2, 3)
        if max(abs(dx), abs(dy)) == 2
    ],
)

# Plus of five extensions inside a diamond of roads. The road at (1, 1) is the
# cluster's network anchor.
EXTENSION_PLUS = _stamp(
    "extension_plus",
    2,
    required=[
        (S.EXTENSION, 0, 0),
        (S.EXTENSION, 0, -1),
        (S.EXTENSION, 0, 1),
        (S.EXTENSION, -1, 0),
        (S.EXTENSION, 1, 0),
        (S.ROAD, 1, 1),
    ],
    optional=[
        (S.ROAD, -1, -1),
        (S.ROAD, 1, -1),
        (S.ROAD, -1, 1),
        (S.ROAD, 0, -2),
        (S.ROAD, 0, 2),
        (S.ROAD, -2, 0),
        (S.ROAD, 2, 0),
    ],
)

# Three extensions wrapped around one road corner
EXTENSION_TRIO = _stamp(
    "extension_trio",
    1,
    required=[
        (S.EXTENSION, 0, 0),
        (S.EXTENSION, 1, 0),
        (S.EXTENSION, 0, 1),
        (S.ROAD, 1, 1),
    ],
)

# Ten labs along a diagonal road. Every lab is within range 2 of both reagent
# labs at (2, 1) and (1, 2).
LAB_STAMP = _stamp(
    "labs",
    3,
    required=[
        (S.ROAD, 0, 0),
        (S.ROAD, 1, 1),
        (S.ROAD, 2, 2),
        (S.ROAD, 3, 3),
        (S.LAB, 1, 0),
        (S.LAB, 2, 0),
        (S.LAB, 0, 1),
        (S.LAB, 2, 1),
        (S.LAB, 3, 1),
        (S.LAB, 0, 2),
        (S.LAB, 1, 2),
        (S.LAB, 3, 2),
        (S.LAB, 1, 3),
        (S.LAB, 2, 3),
    ],
)

# Largest first
EXTENSION_STAMPS = [EXTENSION_PLUS, EXTENSION_TRIO]
