"""
Tests for plan image rendering.

Run with: python -m pytest tests/test_render.py
"""

import io

from PIL import Image

from planner.render import TILE_SIZE, PlanImageRenderer, hex_to_rgb, render_plan_to_image
from planner.structures import StructureType
from planner.terrain import Location, TerrainGrid


def test_hex_to_rgb():
    assert hex_to_rgb("#16a34a") == (22, 163, 74)
    assert hex_to_rgb("ffffff") == (255, 255, 255)


def test_render_plan_png(open_plan, open_room):
    png = render_plan_to_image(open_plan, open_room.get_terrain(), open_room.points_of_interest())
    assert png[:8] == b"\x89PNG\r\n\x1a\n"
    image = Image.open(io.BytesIO(png))
    assert image.size == (50 * TILE_SIZE, 50 * TILE_SIZE)


def test_renderer_counts_plan_items(open_plan):
    renderer = PlanImageRenderer()
    open_plan.visualize(renderer)
    assert renderer.rendered == len(open_plan.items)


def test_wall_tiles_drawn():
    rows = [[0] * 50 for _ in range(50)]
    rows[0][0] = 1
    renderer = PlanImageRenderer(TerrainGrid.from_rows(rows))
    renderer.render(Location(10, 10), StructureType.SPAWN)
    assert renderer.image.getpixel((1, 1)) == hex_to_rgb("#111111")
    centre = 10 * TILE_SIZE + TILE_SIZE // 2
    assert renderer.image.getpixel((centre, centre)) == hex_to_rgb("#f59e0b")
