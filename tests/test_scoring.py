"""
Tests for scoring module.

Run with: python -m pytest tests/test_scoring.py
"""

import pytest

from planner.config import merge_config
from planner.layout import ROLE_CONTROLLER, ROLE_DEFENSE, ROLE_EXTENSION, ROLE_HUB, ROLE_SOURCE, CandidatePlan
from planner.reachability import walkable_from_hub
from planner.scoring import (
    bounding_region,
    score_compactness,
    score_defensibility,
    score_extension_efficiency,
    score_hub_quality,
    score_path_length,
    score_plan,
    score_tower_coverage,
    score_upgrade_area,
    score_upkeep,
    score_wasted_tiles,
    tower_damage,
)
from planner.structures import StructureType
from planner.terrain import Location, TerrainGrid


def test_bounding_region():
    assert bounding_region([]) is None
    assert bounding_region([Location(3, 9), Location(7, 2)]) == (3, 2, 7, 9)


def test_compactness_full_square():
    plan = CandidatePlan(Location(10, 10))
    for x in (20, 21):
        for y in (20, 21):
            plan.place(Location(x, y), StructureType.EXTENSION, ROLE_EXTENSION)
    assert score_compactness(plan) == 1.0


def test_compactness_sparse():
    plan = CandidatePlan(Location(10, 10))
    plan.place(Location(20, 20), StructureType.EXTENSION, ROLE_EXTENSION)
    plan.place(Location(21, 21), StructureType.EXTENSION, ROLE_EXTENSION)
    assert score_compactness(plan) == 0.5


def test_extension_efficiency():
    plan = CandidatePlan(Location(10, 10))
    assert score_extension_efficiency(plan) == 0.0
    plan.place(Location(15, 12), StructureType.EXTENSION, ROLE_EXTENSION)
    assert score_extension_efficiency(plan) == pytest.approx(0.8)


def test_upkeep_counts_containers_and_swamp_roads():
    rows = [[0] * 50 for _ in range(50)]
    rows[5][5] = 2
    grid = TerrainGrid.from_rows(rows)
    plan = CandidatePlan(Location(10, 10))
    assert score_upkeep(plan, grid) == 1.0
    plan.place(Location(20, 20), StructureType.CONTAINER, ROLE_SOURCE)
    plan.add_road(Location(5, 5))
    assert score_upkeep(plan, grid) == pytest.approx(1.0 - 5 / 200)


def test_defensibility_open_and_corner():
    grid = TerrainGrid.plain()
    center = CandidatePlan(Location(25, 25))
    center.add_road(Location(25, 25))
    assert score_defensibility(center, grid, 1) == 0.0

    corner = CandidatePlan(Location(0, 0))
    corner.add_road(Location(0, 0))
    assert score_defensibility(corner, grid, 1) == pytest.approx(5 / 8)


def test_path_length_without_points():
    plan = CandidatePlan(Location(10, 10))
    walk = walkable_from_hub(TerrainGrid.plain(), plan)
    assert score_path_length(plan, walk, 50) == 1.0


def test_path_length_uses_stub_distance():
    plan = CandidatePlan(Location(10, 10))
    plan.infrastructure["sources"] = [{"stub": Location(20, 10)}]
    walk = walkable_from_hub(TerrainGrid.plain(), plan)
    assert score_path_length(plan, walk, 50) == pytest.approx(0.8)


def test_wasted_tiles_counts_sealed_pockets():
    grid = TerrainGrid.plain()
    plan = CandidatePlan(Location(10, 10))
    plan.add_road(Location(10, 10))
    for n in Location(30, 30).neighbors():
        plan.place(n, StructureType.EXTENSION, ROLE_EXTENSION)
    walk = walkable_from_hub(grid, plan)
    assert score_wasted_tiles(plan, grid, walk) < 1.0

    open_plan = CandidatePlan(Location(10, 10))
    open_plan.add_road(Location(10, 10))
    open_plan.place(Location(20, 20), StructureType.EXTENSION, ROLE_EXTENSION)
    walk = walkable_from_hub(grid, open_plan)
    assert score_wasted_tiles(open_plan, grid, walk) == 1.0


def test_score_plan_weighted_total():
    plan = CandidatePlan(Location(10, 10))
    for x in (20, 21):
        for y in (20, 21):
            plan.place(Location(x, y), StructureType.EXTENSION, ROLE_EXTENSION)
    weights = {
        "path_length": 0,
        "compactness": 1,
        "wasted_tiles": 0,
        "defensibility": 0,
        "extension_efficiency": 0,
        "upkeep": 0,
        "tower_coverage": 0,
        "hub_quality": 0,
        "upgrade_area": 0,
    }
    config = merge_config({"scoring": {"weights": weights}})
    score = score_plan(plan, TerrainGrid.plain(), config)
    assert score.total == 1.0
    assert set(score.components) == set(weights)


def test_open_plan_score_in_range(open_plan):
    assert 0.0 < open_plan.score.total <= 1.0
    for value in open_plan.score.components.values():
        assert 0.0 <= value <= 1.0


def test_tower_damage_falloff():
    assert tower_damage(0) == 600
    assert tower_damage(5) == 600
    assert tower_damage(10) == 450
    assert tower_damage(20) == 150
    assert tower_damage(40) == 150


def test_tower_coverage_uses_weakest_rampart():
    plan = CandidatePlan(Location(25, 25))
    assert score_tower_coverage(plan) == 0.0
    for x in (24, 25, 26):
        plan.place(Location(x, 22), StructureType.TOWER, ROLE_DEFENSE)
    plan.place(Location(25, 20), StructureType.RAMPART, ROLE_DEFENSE)
    assert score_tower_coverage(plan) == pytest.approx(1800 / 3600)
    plan.place(Location(25, 35), StructureType.RAMPART, ROLE_DEFENSE)
    # The far rampart sits 13 tiles out: 360 damage per tower
    assert score_tower_coverage(plan) == pytest.approx(3 * 360 / 3600)


def test_hub_quality_counts_adjacent_key_structures():
    plan = CandidatePlan(Location(25, 25))
    assert score_hub_quality(plan) == 0.0
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    plan.place(Location(24, 26), StructureType.TERMINAL, ROLE_HUB)
    plan.place(Location(30, 30), StructureType.FACTORY, ROLE_HUB)
    assert score_hub_quality(plan) == pytest.approx(2 / 5)


def test_upgrade_area_counts_free_tiles_near_controller():
    grid = TerrainGrid.plain()
    plan = CandidatePlan(Location(25, 25))
    assert score_upgrade_area(plan, grid) == 0.0
    controller = Location(25, 40)
    plan.infrastructure["controller"] = {"point": controller}
    assert score_upgrade_area(plan, grid, [controller]) == 1.0

    for dy in range(-3, 4):
        for dx in range(-3, 4):
            loc = controller.offset(dx, dy)
            if loc != controller and (dx, dy) not in ((3, 3), (-3, 3)):
                plan.place(loc, StructureType.EXTENSION, ROLE_CONTROLLER)
    assert score_upgrade_area(plan, grid, [controller]) == pytest.approx(0.5)
