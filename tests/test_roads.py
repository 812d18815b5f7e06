"""
Tests for road network synthesis, pruning and reachability.

Run with: python -m pytest tests/test_roads.py
"""

import pytest

from planner.errors import UnreachableStructure
from planner.layout import ROLE_EXTENSION, CandidatePlan
from planner.reachability import validate_reachability, walkable_from_hub
from planner.roads import anchors_connected, build_roads, connect_anchors, prune_plan_roads, prune_roads
from planner.structures import StructureType
from planner.terrain import UNREACHED, Location, TerrainGrid


def _grid(walls=(), swamps=()):
    rows = [[0] * 50 for _ in range(50)]
    for x, y in walls:
        rows[y][x] = 1
    for x, y in swamps:
        rows[y][x] = 2
    return TerrainGrid.from_rows(rows)


def _anywhere(loc):
    return True


# =========================
# Builder
# =========================

def test_connect_straight_line():
    root = Location(10, 10)
    anchor = Location(15, 10)
    network = connect_anchors(TerrainGrid.plain(), root, [anchor], _anywhere)
    assert len(network.tiles) == 5
    assert root not in network.tiles
    assert anchor in network.tiles
    assert network.path_length(anchor) == 5
    assert anchors_connected(network.tiles, [root, anchor])


def test_connect_ignores_root_as_anchor():
    root = Location(10, 10)
    network = connect_anchors(TerrainGrid.plain(), root, [root], _anywhere)
    assert network.tiles == set()
    assert network.anchors == []


def test_connect_reuses_existing_roads():
    root = Location(10, 10)
    anchor = Location(20, 10)
    existing = {Location(x, 12) for x in range(11, 20)}
    network = connect_anchors(TerrainGrid.plain(), root, [anchor], _anywhere, existing)
    assert Location(15, 12) in network.tiles
    assert Location(15, 10) not in network.tiles


def test_swamp_cost_steers_around_swamp():
    swamp = [(x, y) for x in range(11, 14) for y in range(9, 12)]
    grid = _grid(swamps=swamp)
    root = Location(10, 10)
    anchor = Location(14, 10)

    cheap = connect_anchors(grid, root, [anchor], _anywhere, swamp_cost=1)
    assert len(cheap.tiles) == 4

    costly = connect_anchors(grid, root, [anchor], _anywhere, swamp_cost=10)
    assert not any(grid.is_swamp(loc) for loc in costly.tiles)


def test_walled_off_anchor_raises():
    grid = _grid(walls=[(20, y) for y in range(50)])
    with pytest.raises(UnreachableStructure) as exc:
        connect_anchors(grid, Location(10, 10), [Location(30, 10)], _anywhere)
    assert exc.value.location == Location(30, 10)


def test_passable_callback_respected():
    blocked = {Location(12, y) for y in range(49)}
    network = connect_anchors(
        TerrainGrid.plain(), Location(10, 10), [Location(14, 10)],
        lambda loc: loc not in blocked,
    )
    assert not network.tiles & blocked
    assert Location(12, 49) in network.tiles


# =========================
# Pruner
# =========================

def test_prune_keeps_single_path():
    root = Location(10, 10)
    anchor = Location(15, 10)
    tiles = {Location(x, 10) for x in range(11, 16)} | {Location(x, 11) for x in range(11, 15)}
    kept = prune_roads(tiles, [root, anchor])
    assert len(kept) == 5
    assert anchor in kept
    assert anchors_connected(kept, [root, anchor])


def test_prune_drops_dead_ends():
    root = Location(10, 10)
    anchor = Location(13, 10)
    spur = {Location(12, y) for y in range(11, 16)}
    tiles = {Location(11, 10), Location(12, 10), anchor} | spur
    kept = prune_roads(tiles, [root, anchor])
    assert len(kept) == 3
    assert not kept & {Location(12, y) for y in range(12, 16)}
    assert anchors_connected(kept, [root, anchor])


def test_prune_keeps_fixed_tiles():
    root = Location(10, 10)
    anchor = Location(12, 10)
    fixed = {Location(11, 11)}
    tiles = {Location(11, 10), anchor} | fixed
    kept = prune_roads(tiles, [root, anchor], fixed=fixed)
    assert Location(11, 11) in kept


def test_anchors_connected_detects_split():
    tiles = {Location(11, 10), Location(14, 10)}
    assert not anchors_connected(tiles, [Location(10, 10), Location(15, 10)])
    assert anchors_connected(set(), [Location(10, 10)])


def test_build_and_prune_plan(context_factory):
    ctx = context_factory()
    ctx.plan.add_anchor(Location(30, 25))
    build_roads(ctx)
    assert ctx.plan.has_road(Location(30, 25))
    prune_plan_roads(ctx)
    anchors = [ctx.plan.hub] + ctx.plan.anchors
    assert anchors_connected(ctx.plan.road_tiles(), anchors)
    # Hub stamp roads are never pruned
    assert ctx.plan.has_road(Location(23, 23))


# =========================
# Reachability
# =========================

def test_walkable_from_hub_skips_blocking_structures():
    plan = CandidatePlan(Location(10, 10))
    plan.place(Location(11, 10), StructureType.EXTENSION, ROLE_EXTENSION)
    plan.place(Location(12, 10), StructureType.CONTAINER, ROLE_EXTENSION)
    dist = walkable_from_hub(TerrainGrid.plain(), plan)
    assert dist[10, 11] == UNREACHED
    assert dist[10, 12] == 2


def test_structure_in_walled_pocket_unreachable():
    pocket = Location(30, 30)
    walls = [(pocket.x + dx, pocket.y + dy)
             for dx in (-1, 0, 1) for dy in (-1, 0, 1) if (dx, dy) != (0, 0)]
    plan = CandidatePlan(Location(10, 10))
    plan.place(pocket, StructureType.EXTENSION, ROLE_EXTENSION)
    with pytest.raises(UnreachableStructure) as exc:
        validate_reachability(_grid(walls=walls), plan)
    assert exc.value.location == pocket


def test_structure_sealed_by_structures_unreachable():
    center = Location(30, 30)
    plan = CandidatePlan(Location(10, 10))
    for n in center.neighbors():
        plan.place(n, StructureType.EXTENSION, ROLE_EXTENSION)
    plan.place(center, StructureType.TOWER, ROLE_EXTENSION)
    with pytest.raises(UnreachableStructure) as exc:
        validate_reachability(TerrainGrid.plain(), plan)
    assert exc.value.location == center


def test_open_structure_reachable():
    plan = CandidatePlan(Location(10, 10))
    plan.place(Location(20, 20), StructureType.EXTENSION, ROLE_EXTENSION)
    validate_reachability(TerrainGrid.plain(), plan)


def _wall_with_gap_at_top():
    return _grid(walls=[(12, y) for y in range(3, 50)])


def test_long_detour_rejected():
    plan = CandidatePlan(Location(10, 25))
    target = Location(14, 25)
    plan.place(target, StructureType.EXTENSION, ROLE_EXTENSION)
    grid = _wall_with_gap_at_top()

    validate_reachability(grid, plan)
    with pytest.raises(UnreachableStructure) as exc:
        validate_reachability(grid, plan, detour_ratio=2, detour_threshold=8)
    assert exc.value.location == target
    assert "limit 16" in exc.value.reason


def test_detour_exempt_tiles_still_pass():
    plan = CandidatePlan(Location(10, 25))
    target = Location(14, 25)
    plan.place(target, StructureType.CONTAINER, ROLE_EXTENSION)
    validate_reachability(
        _wall_with_gap_at_top(), plan,
        detour_ratio=2, detour_threshold=8, detour_exempt=frozenset({target}),
    )


def test_roads_stay_off_the_room_edge(context_factory):
    ctx = context_factory()
    for loc in (Location(0, 25), Location(49, 25), Location(25, 0), Location(25, 49), Location(0, 0)):
        assert not ctx.is_road_allowed(loc)
    assert ctx.is_road_allowed(Location(1, 25))

    # A stub hugging the edge is reached along x == 1, never along x == 0
    network = connect_anchors(ctx.grid, Location(1, 5), [Location(1, 40)], ctx.is_road_allowed)
    assert network.tiles
    assert all(not loc.is_edge() for loc in network.tiles)
