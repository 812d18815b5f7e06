"""
Shared pytest fixtures.

The database URL is pointed at a throwaway SQLite file before anything
imports the app, so test runs never touch a real planning database.
"""

import os
import sys
import tempfile

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

_DB_DIR = tempfile.mkdtemp(prefix="room_planner_tests_")
os.environ["PLANNER_DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'planner.db')}"

import pytest  # noqa: E402

from planner.config import merge_config  # noqa: E402
from planner.room_data import Mineral, StaticRoomData  # noqa: E402
from planner.terrain import Location, TerrainGrid  # noqa: E402

OPEN_ROOM = {
    "name": "W1N1",
    "terrain": ["0" * 50 for _ in range(50)],
    "sources": [[10, 10], [40, 12]],
    "controller": [25, 40],
    "mineral": {"x": 12, "y": 38, "type": "H"},
}


def make_open_room(name: str = "W1N1") -> StaticRoomData:
    return StaticRoomData(
        name=name,
        terrain=TerrainGrid.plain(),
        sources=[Location(10, 10), Location(40, 12)],
        controller=Location(25, 40),
        mineral=Mineral(Location(12, 38), "H"),
    )


@pytest.fixture
def open_room():
    return make_open_room()


@pytest.fixture
def fast_config():
    """Defaults with a short candidate list so full runs stay quick."""
    return merge_config({"candidates": {"max_candidates": 2}})


@pytest.fixture
def open_room_payload():
    return {k: (list(v) if isinstance(v, list) else v) for k, v in OPEN_ROOM.items()}


@pytest.fixture(scope="session")
def open_plan():
    """One full planning run of the open room, shared by the slow tests."""
    from planner.pipeline import plan_room

    return plan_room(make_open_room(), merge_config({"candidates": {"max_candidates": 2}}))


def hub_context(room=None, config=None, hub=Location(25, 25), variant=0):
    """Planning context with the hub already stamped at ``hub``."""
    from planner.analysis import analyze_room
    from planner.candidates import HubCandidate
    from planner.hub import place_hub
    from planner.layout import CandidatePlan, PlanningContext

    room = room or make_open_room()
    config = config or merge_config(None)
    analysis = analyze_room(room, int(config["exit_setback"]))
    ctx = PlanningContext(room, analysis, config, CandidatePlan())
    place_hub(ctx, HubCandidate(hub, variant, 1.0))
    return ctx


@pytest.fixture
def context_factory():
    return hub_context
