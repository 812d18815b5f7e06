"""
Server-side plan rendering for image generation.

This module draws a finished plan over its room terrain as a PNG. The
renderer is a Visualizer, so the plan drives it one tile at a time through
Plan.visualize().

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import io
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw

from .plan import Plan
from .structures import StructureType
from .terrain import ROOM_SIZE, Location, Terrain, TerrainGrid

# Pixels per tile
TILE_SIZE = 12

TERRAIN_COLORS = {
    Terrain.PLAIN: "#2b2b2b",
    Terrain.WALL: "#111111",
    Terrain.SWAMP: "#232d1a",
}

STRUCTURE_COLORS: Dict[StructureType, str] = {
    StructureType.ROAD: "#6b6b6b",
    StructureType.SPAWN: "#f59e0b",
    StructureType.EXTENSION: "#facc15",
    StructureType.STORAGE: "#16a34a",
    StructureType.TERMINAL: "#0ea5e9",
    StructureType.LINK: "#a78bfa",
    StructureType.CONTAINER: "#b45309",
    StructureType.TOWER: "#dc2626",
    StructureType.LAB: "#e5e7eb",
    StructureType.FACTORY: "#64748b",
    StructureType.POWER_SPAWN: "#f43f5e",
    StructureType.NUKER: "#7f1d1d",
    StructureType.OBSERVER: "#22d3ee",
    StructureType.EXTRACTOR: "#84cc16",
    StructureType.RAMPART: "#15803d",
    StructureType.WALL: "#0f172a",
}

POI_COLOR = "#fde68a"


def hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    """Convert hex color string to RGB tuple.

    Args:
        hex_color: Hex color string (e.g., "#16a34a").

    Returns:
        RGB tuple (r, g, b).
    """
    hex_color = hex_color.lstrip('#')
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _tile_box(loc: Location, inset: int = 0) -> Tuple[int, int, int, int]:
    px = loc.x * TILE_SIZE
    py = loc.y * TILE_SIZE
    return px + inset, py + inset, px + TILE_SIZE - 1 - inset, py + TILE_SIZE - 1 - inset


class PlanImageRenderer:
    """Visualizer drawing each planned tile onto a Pillow image."""

    def __init__(self, grid: Optional[TerrainGrid] = None):
        size = ROOM_SIZE * TILE_SIZE
        self.image = Image.new('RGB', (size, size), hex_to_rgb(TERRAIN_COLORS[Terrain.PLAIN]))
        self.draw = ImageDraw.Draw(self.image)
        self.rendered = 0
        if grid is not None:
            self._draw_terrain(grid)

    def _draw_terrain(self, grid: TerrainGrid):
        for y in range(ROOM_SIZE):
            for x in range(ROOM_SIZE):
                loc = Location(x, y)
                if grid.is_wall(loc):
                    color = TERRAIN_COLORS[Terrain.WALL]
                elif grid.is_swamp(loc):
                    color = TERRAIN_COLORS[Terrain.SWAMP]
                else:
                    continue
                self.draw.rectangle(_tile_box(loc), fill=hex_to_rgb(color))

    def mark_point(self, loc: Location):
        """Outline a source, controller or mineral tile."""
        self.draw.rectangle(_tile_box(loc, 1), outline=hex_to_rgb(POI_COLOR), width=2)

    def render(self, location: Location, structure_type: StructureType) -> None:
        color = hex_to_rgb(STRUCTURE_COLORS.get(structure_type, "#ffffff"))
        if structure_type == StructureType.ROAD:
            # Roads are drawn small so they read as paths between structures
            self.draw.rectangle(_tile_box(location, TILE_SIZE // 3), fill=color)
        elif structure_type == StructureType.RAMPART:
            self.draw.rectangle(_tile_box(location), outline=color, width=2)
        else:
            self.draw.rectangle(_tile_box(location, 1), fill=color)
        self.rendered += 1

    def to_png(self) -> bytes:
        img_bytes = io.BytesIO()
        self.image.save(img_bytes, format='PNG')
        img_bytes.seek(0)
        return img_bytes.getvalue()


def render_plan_to_image(plan: Plan, grid: Optional[TerrainGrid] = None,
                         points_of_interest=()) -> bytes:
    """Render the plan to a PNG image.

    Args:
        plan: Finished plan.
        grid: Room terrain drawn underneath, plain when omitted.
        points_of_interest: Tiles outlined on top of the terrain.

    Returns:
        PNG image as bytes.
    """
    renderer = PlanImageRenderer(grid)
    for loc in points_of_interest:
        renderer.mark_point(loc)
    plan.visualize(renderer)
    return renderer.to_png()
