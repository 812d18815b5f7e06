"""
Room data source interface.

The planner reads terrain and points of interest through RoomDataSource so it
never depends on where the room came from. StaticRoomData is the in-memory
implementation used by the API, the CLI and the tests.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .terrain import Location, TerrainGrid


@dataclass(frozen=True)
class Mineral:
    location: Location
    mineral_type: str


class RoomDataSource(ABC):
    """Read-only view of one room, queried once per planning run."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def get_terrain(self) -> TerrainGrid:
        ...

    @abstractmethod
    def get_sources(self) -> List[Location]:
        ...

    @abstractmethod
    def get_controller(self) -> Optional[Location]:
        ...

    @abstractmethod
    def get_mineral(self) -> Optional[Mineral]:
        ...

    def points_of_interest(self) -> List[Location]:
        """Sources, controller and mineral tiles (never buildable, never walkable)."""
        points = list(self.get_sources())
        controller = self.get_controller()
        if controller is not None:
            points.append(controller)
        mineral = self.get_mineral()
        if mineral is not None:
            points.append(mineral.location)
        return points


class StaticRoomData(RoomDataSource):
    """Room data held in memory."""

    def __init__(
        self,
        name: str,
        terrain: TerrainGrid,
        sources: List[Location],
        controller: Optional[Location] = None,
        mineral: Optional[Mineral] = None,
    ):
        self._name = name
        self._terrain = terrain
        self._sources = sorted(sources)
        self._controller = controller
        self._mineral = mineral

    @property
    def name(self) -> str:
        return self._name

    def get_terrain(self) -> TerrainGrid:
        return self._terrain

    def get_sources(self) -> List[Location]:
        return list(self._sources)

    def get_controller(self) -> Optional[Location]:
        return self._controller

    def get_mineral(self) -> Optional[Mineral]:
        return self._mineral

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StaticRoomData":
        """Build from the JSON room payload.

        Expected keys: ``name``, ``terrain`` (50 row strings, 50 int lists or
        one 2500 character string), ``sources`` (list of ``[x, y]``),
        ``controller`` (``[x, y]``) and ``mineral``
        (``{"x", "y", "type"}``).
        """
        raw_terrain = data["terrain"]
        if isinstance(raw_terrain, str):
            terrain = TerrainGrid.from_string(raw_terrain)
        else:
            terrain = TerrainGrid.from_rows(raw_terrain)

        sources = [Location.from_any(s) for s in data.get("sources", [])]
        controller = data.get("controller")
        mineral = data.get("mineral")
        return cls(
            name=data.get("name", "room"),
            terrain=terrain,
            sources=sources,
            controller=Location.from_any(controller) if controller is not None else None,
            mineral=Mineral(
                Location.from_any(mineral),
                mineral.get("type", "") if isinstance(mineral, dict) else "",
            ) if mineral is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "name": self._name,
            "terrain": self._terrain.to_rows(),
            "sources": [s.to_list() for s in self._sources],
            "controller": self._controller.to_list() if self._controller else None,
            "mineral": None,
        }
        if self._mineral is not None:
            result["mineral"] = {
                "x": self._mineral.location.x,
                "y": self._mineral.location.y,
                "type": self._mineral.mineral_type,
            }
        return result
