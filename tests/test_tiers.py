"""
Tests for tier assignment.

Run with: python -m pytest tests/test_tiers.py
"""

import pytest

from planner.config import merge_config
from planner.errors import InsufficientSpace
from planner.layout import (
    ROLE_DEFENSE,
    ROLE_EXTENSION,
    ROLE_HUB,
    ROLE_MINERAL,
    ROLE_SOURCE,
    CandidatePlan,
    Substitution,
)
from planner.structures import StructureType
from planner.tiers import assign_tiers
from planner.terrain import Location


def _plan():
    return CandidatePlan(Location(25, 25))


def test_extension_tiers_follow_caps():
    plan = _plan()
    locs = [Location(30, y) for y in range(10, 18)]
    for loc in locs:
        plan.place(loc, StructureType.EXTENSION, ROLE_EXTENSION)
    assign_tiers(plan, merge_config(None))
    assert [plan.items[loc].tier for loc in locs] == [2] * 5 + [3] * 3


def test_category_priority_beats_placement_order():
    plan = _plan()
    late = Location(40, 40)
    early = [Location(30, y) for y in range(10, 15)]
    for loc in early:
        plan.place(loc, StructureType.EXTENSION, ROLE_EXTENSION)
    plan.place(late, StructureType.EXTENSION, ROLE_HUB)
    assign_tiers(plan, merge_config(None))
    assert plan.items[late].tier == 2
    assert plan.items[early[-1]].tier == 3


def test_fixed_tiers():
    plan = _plan()
    plan.place(Location(24, 25), StructureType.SPAWN, ROLE_HUB)
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    plan.place(Location(10, 11), StructureType.CONTAINER, ROLE_SOURCE)
    plan.place(Location(20, 20), StructureType.RAMPART, ROLE_DEFENSE)
    plan.place(Location(12, 38), StructureType.EXTRACTOR, ROLE_MINERAL)
    plan.place(Location(12, 37), StructureType.CONTAINER, ROLE_MINERAL)
    assign_tiers(plan, merge_config(None))

    assert plan.items[Location(24, 25)].tier == 1
    assert plan.items[Location(25, 26)].tier == 4
    assert plan.items[Location(10, 11)].tier == 1
    assert plan.items[Location(20, 20)].tier == 2
    assert plan.items[Location(12, 38)].tier == 6
    # Mineral container waits for the extractor
    assert plan.items[Location(12, 37)].tier == 6


def test_road_tiers():
    plan = _plan()
    plan.place(Location(24, 25), StructureType.SPAWN, ROLE_HUB)
    plan.place(Location(10, 11), StructureType.CONTAINER, ROLE_SOURCE)
    plan.add_road(Location(23, 25))
    plan.add_road(Location(10, 11))
    plan.add_road(Location(40, 5))
    assign_tiers(plan, merge_config(None))

    assert plan.items[Location(23, 25)].road_tier == 1
    # A road under a container takes the container tier
    assert plan.items[Location(10, 11)].road_tier == 1
    assert plan.items[Location(40, 5)].road_tier == 2


def test_default_road_tier_from_config():
    plan = _plan()
    plan.add_road(Location(40, 5))
    assign_tiers(plan, merge_config({"tiers": {"default_road_tier": 3}}))
    assert plan.items[Location(40, 5)].road_tier == 3


def test_too_many_structures_raise():
    plan = _plan()
    for i in range(4):
        plan.place(Location(10 + i, 10), StructureType.TOWER, ROLE_DEFENSE)
    config = merge_config({"tiers": {"caps": {"tower": [0, 0, 0, 1, 1, 2, 2, 3, 3]}}})
    with pytest.raises(InsufficientSpace):
        assign_tiers(plan, config)


def test_hub_distance_breaks_ties():
    plan = _plan()
    near = Location(27, 25)
    far = Location(35, 25)
    plan.place(far, StructureType.TOWER, ROLE_DEFENSE)
    plan.place(near, StructureType.TOWER, ROLE_DEFENSE)
    # Same order value forces the distance key to decide
    plan.items[far].order = plan.items[near].order = 0
    assign_tiers(plan, merge_config(None))
    assert plan.items[near].tier == 3
    assert plan.items[far].tier == 5


# =========================
# Containers and the storage stand-in
# =========================

def _containers_at(plan, tier):
    count = sum(
        1 for _, item in plan.structures()
        if item.structure_type == StructureType.CONTAINER and item.tier <= tier
    )
    return count + sum(1 for sub in plan.substitutions if sub.active(tier))


def test_stand_in_uses_free_container_slot():
    plan = _plan()
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    plan.place(Location(10, 11), StructureType.CONTAINER, ROLE_SOURCE)
    assign_tiers(plan, merge_config(None))
    assert plan.substitutions == [Substitution(Location(25, 26), StructureType.CONTAINER, 1, 4)]


def test_stand_in_dropped_when_containers_fill_the_cap():
    plan = _plan()
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    for i in range(5):
        plan.place(Location(10 + 2 * i, 11), StructureType.CONTAINER, ROLE_SOURCE)
    assign_tiers(plan, merge_config(None))
    assert plan.substitutions == []
    for tier in range(1, 9):
        assert _containers_at(plan, tier) <= 5


def test_mineral_container_never_exceeds_cap():
    plan = _plan()
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    for i in range(4):
        plan.place(Location(10 + 2 * i, 11), StructureType.CONTAINER, ROLE_SOURCE)
    plan.place(Location(12, 38), StructureType.EXTRACTOR, ROLE_MINERAL)
    plan.place(Location(12, 37), StructureType.CONTAINER, ROLE_MINERAL)
    assign_tiers(plan, merge_config(None))

    # Four source containers plus the stand-in fill tiers 1-3, the mineral
    # container only arrives once the storage has replaced the stand-in
    assert len(plan.substitutions) == 1
    assert plan.items[Location(12, 37)].tier == 6
    for tier in range(1, 9):
        assert _containers_at(plan, tier) <= 5


def test_container_overflow_raises():
    plan = _plan()
    for i in range(6):
        plan.place(Location(10 + 2 * i, 11), StructureType.CONTAINER, ROLE_SOURCE)
    with pytest.raises(InsufficientSpace):
        assign_tiers(plan, merge_config(None))


def test_container_cap_override():
    plan = _plan()
    plan.place(Location(25, 26), StructureType.STORAGE, ROLE_HUB)
    plan.place(Location(10, 11), StructureType.CONTAINER, ROLE_SOURCE)
    config = merge_config({"tiers": {"caps": {"container": [1] * 9}}})
    assign_tiers(plan, config)
    assert plan.items[Location(10, 11)].tier == 1
    assert plan.substitutions == []
