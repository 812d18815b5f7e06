"""
Hub candidate generation.

Candidates pair a hub anchor position with one orientation of the hub stamp.
Positions are sampled on a stride inside the build border and ranked by a
cheap terrain-fit heuristic so the expensive stages only ever see the most
promising few.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple

from .analysis import RoomAnalysis
from .stamps import HUB_STAMP, Stamp
from .terrain import BUILD_BORDER, ROOM_SIZE, UNREACHED, Location

DEBUG = False

HUB_VARIANTS: List[Stamp] = HUB_STAMP.variants()


@dataclass(frozen=True)
class HubCandidate:
    anchor: Location
    variant: int
    heuristic: float
    generation: int = 0

    @property
    def stamp(self) -> Stamp:
        return HUB_VARIANTS[self.variant]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anchor": self.anchor.pack(),
            "variant": self.variant,
            "heuristic": self.heuristic,
            "generation": self.generation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HubCandidate":
        return cls(
            anchor=Location.unpack(data["anchor"]),
            variant=int(data["variant"]),
            heuristic=float(data["heuristic"]),
            generation=int(data.get("generation", 0)),
        )


def footprint_clear(stamp: Stamp, anchor: Location, analysis: RoomAnalysis) -> bool:
    """Required hub tiles are in the room, not walls, not points of interest."""
    for loc in stamp.footprint(anchor):
        if not loc.in_room():
            return False
        if not analysis.grid.is_walkable(loc) or loc in analysis.points_of_interest:
            return False
    return True


def candidate_heuristic(anchor: Location, analysis: RoomAnalysis, config: Dict[str, Any]) -> float:
    """Terrain-fit score in [0, 1]: open space around the anchor and closeness to points of interest.

    Args:
        anchor: Proposed hub tile.
        analysis: Room analysis.
        config: Full planner config.

    Returns:
        Weighted blend of openness and proximity.
    """
    opts = config["candidates"]
    max_path = float(config["scoring"]["max_path_length"])

    peak = max(int(analysis.openness.max()), 1)
    openness = int(analysis.openness[anchor.y, anchor.x]) / peak

    distances = []
    for maps in analysis.poi_distances().values():
        for dist in maps:
            d = int(dist[anchor.y, anchor.x])
            distances.append(max_path if d == UNREACHED else min(d, max_path))
    proximity = 1.0 - (sum(distances) / len(distances)) / max_path if distances else 0.0

    ow = float(opts["openness_weight"])
    pw = float(opts["proximity_weight"])
    if ow + pw <= 0:
        return 0.0
    return (ow * openness + pw * proximity) / (ow + pw)


def _anchor_positions(analysis: RoomAnalysis, stride: int, min_openness: int) -> List[Location]:
    positions = []
    for y in range(BUILD_BORDER, ROOM_SIZE - BUILD_BORDER, stride):
        for x in range(BUILD_BORDER, ROOM_SIZE - BUILD_BORDER, stride):
            loc = Location(x, y)
            if not analysis.grid.walkable_mask[y, x] or loc in analysis.points_of_interest:
                continue
            if int(analysis.openness[y, x]) >= min_openness:
                positions.append(loc)
    return positions


def generate_candidates(analysis: RoomAnalysis, config: Dict[str, Any]) -> Iterator[HubCandidate]:
    """Lazily yield hub candidates, best heuristic first.

    Positions below ``candidates.min_heuristic`` and orientations whose
    footprint touches a wall are dropped here. At most
    ``candidates.variants_per_anchor`` orientations are kept per position and
    at most ``candidates.max_candidates`` candidates are yielded overall.

    Args:
        analysis: Room analysis.
        config: Full planner config.

    Yields:
        HubCandidate values in generation order.
    """
    opts = config["candidates"]
    stride = max(int(opts["stride"]), 1)
    threshold = float(opts["min_heuristic"])
    limit = int(opts["max_candidates"])
    per_anchor = max(int(opts.get("variants_per_anchor", 2)), 1)

    scored: List[Tuple[float, Location]] = []
    for anchor in _anchor_positions(analysis, stride, int(opts["min_openness"])):
        h = candidate_heuristic(anchor, analysis, config)
        if h >= threshold:
            scored.append((h, anchor))
    scored.sort(key=lambda pair: (-pair[0], pair[1].index))

    if DEBUG:
        print(f"[DEBUG] {len(scored)} hub positions above threshold {threshold}")

    produced = 0
    for h, anchor in scored:
        kept = 0
        for index, stamp in enumerate(HUB_VARIANTS):
            if produced >= limit:
                return
            if kept >= per_anchor:
                break
            if not footprint_clear(stamp, anchor, analysis):
                continue
            yield HubCandidate(anchor, index, round(h, 6), produced)
            produced += 1
            kept += 1
