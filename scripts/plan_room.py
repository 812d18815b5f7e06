#!/usr/bin/env python3
"""
Offline room planning script.

Plans a room from a JSON payload without the HTTP service, optionally in
small budget slices that persist and resume the state the way the service
does, and writes the plan (and a PNG preview) to disk.

Usage:
    python scripts/plan_room.py room.json --out plan.json --png plan.png
    python scripts/plan_room.py room.json --stages-per-tick 5 --tier 3

Author: Matthew Picone
Date: 2026-02-02
"""

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from planner.config import apply_overrides, load_config  # noqa: E402
from planner.errors import BudgetExceeded, PlanningFailed  # noqa: E402
from planner.pipeline import CpuBudget, Planner, PlanningState  # noqa: E402
from planner.render import render_plan_to_image  # noqa: E402
from planner.room_data import StaticRoomData  # noqa: E402


def load_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def run_in_slices(room, config, stages_per_tick):
    """Plan in budget slices, round-tripping the state through JSON between them.

    Returns:
        Tuple of (plan, number of slices).
    """
    state = PlanningState.start(room, config)
    slices = 0
    while True:
        slices += 1
        planner = Planner(room, PlanningState.from_dict(json.loads(json.dumps(state.to_dict()))))
        try:
            return planner.run(CpuBudget.steps(stages_per_tick)), slices
        except BudgetExceeded as e:
            state = e.state
            print(f"⏸️  Slice {slices}: paused at {state.stage.value}")


def main():
    """Main entry point for the planning script."""
    parser = argparse.ArgumentParser(description="Plan a room layout")
    parser.add_argument("room", help="Room payload JSON file")
    parser.add_argument("--config", help="JSON file with config overrides")
    parser.add_argument("--stages-per-tick", type=int, default=0,
                        help="Plan in slices of this many stages (0 = one go)")
    parser.add_argument("--out", help="Write the finished plan JSON here")
    parser.add_argument("--png", help="Write a PNG preview here")
    parser.add_argument("--tier", type=int, help="Print build operations for this tier")
    args = parser.parse_args()

    room = StaticRoomData.from_dict(load_json(args.room))
    overrides = load_json(args.config) if args.config else None
    config = apply_overrides(load_config(), overrides)

    try:
        if args.stages_per_tick > 0:
            plan, slices = run_in_slices(room, config, args.stages_per_tick)
            print(f"✅ Planned {room.name} in {slices} slice(s)")
        else:
            plan = Planner(room, config=config).run()
            print(f"✅ Planned {room.name}")
    except PlanningFailed as e:
        print(f"❌ {e.message}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(plan.summary(), indent=2))

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(plan.to_dict(), f, indent=2)
        print(f"💾 Plan written to {args.out}")

    if args.png:
        png = render_plan_to_image(plan, room.get_terrain(), room.points_of_interest())
        with open(args.png, "wb") as f:
            f.write(png)
        print(f"🖼️  Preview written to {args.png}")

    if args.tier is not None:
        for op in plan.get_build_operations(args.tier):
            print(f"  {op.structure_type.value:<12} ({op.location.x}, {op.location.y})")


if __name__ == "__main__":
    main()
