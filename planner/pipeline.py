"""
Resumable planning pipeline.

Planning runs as an explicit state machine. Every call to ``tick`` executes
whole stages until the CPU budget says stop, then hands back a PlanningState
that serializes to plain JSON. Feeding that state back into ``tick`` on a
later invocation continues exactly where the previous one stopped.

Stage order for one room:

    ANALYSIS -> CANDIDATES -> [per candidate: HUB -> INFRASTRUCTURE ->
    STRUCTURES -> EXTENSIONS -> DEFENSE -> ROADS -> PRUNE -> VALIDATE ->
    TIERS -> SCORE] -> FINALIZE -> COMPLETE | FAILED

A candidate that fails any stage is discarded and the next one starts at HUB.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .analysis import RoomAnalysis, analyze_room
from .candidates import HubCandidate, generate_candidates
from .config import merge_config
from .defense import place_defense
from .errors import BudgetExceeded, PlanningError, PlanningFailed
from .extensions import place_extensions, place_support_structures
from .hub import forced_candidates, place_hub, rank_hub_candidates
from .infrastructure import place_point_infrastructure
from .layout import CandidatePlan, PlanningContext
from .plan import Plan
from .reachability import validate_candidate
from .roads import build_roads, prune_plan_roads
from .room_data import RoomDataSource
from .scoring import score_plan
from .tiers import assign_plan_tiers

DEBUG = False


class Stage(str, Enum):
    ANALYSIS = "analysis"
    CANDIDATES = "candidates"
    HUB = "hub"
    INFRASTRUCTURE = "infrastructure"
    STRUCTURES = "structures"
    EXTENSIONS = "extensions"
    DEFENSE = "defense"
    ROADS = "roads"
    PRUNE = "prune"
    VALIDATE = "validate"
    TIERS = "tiers"
    SCORE = "score"
    FINALIZE = "finalize"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STAGES = (Stage.COMPLETE, Stage.FAILED)

# Candidate stages that only mutate the candidate plan, in order
CANDIDATE_STEPS: Dict[Stage, Callable[[PlanningContext], Any]] = {
    Stage.INFRASTRUCTURE: place_point_infrastructure,
    Stage.STRUCTURES: place_support_structures,
    Stage.EXTENSIONS: place_extensions,
    Stage.DEFENSE: place_defense,
    Stage.ROADS: build_roads,
    Stage.PRUNE: prune_plan_roads,
    Stage.VALIDATE: validate_candidate,
    Stage.TIERS: assign_plan_tiers,
}

NEXT_STAGE = {
    Stage.HUB: Stage.INFRASTRUCTURE,
    Stage.INFRASTRUCTURE: Stage.STRUCTURES,
    Stage.STRUCTURES: Stage.EXTENSIONS,
    Stage.EXTENSIONS: Stage.DEFENSE,
    Stage.DEFENSE: Stage.ROADS,
    Stage.ROADS: Stage.PRUNE,
    Stage.PRUNE: Stage.VALIDATE,
    Stage.VALIDATE: Stage.TIERS,
    Stage.TIERS: Stage.SCORE,
}


# =========================
# CPU Budget
# =========================

class CpuBudget:
    """Wraps the host's "may I keep going?" check.

    The pipeline consults it before every stage; nothing is interrupted
    mid-stage.
    """

    def __init__(self, should_continue: Callable[[], bool]):
        self._should_continue = should_continue

    def should_continue(self) -> bool:
        return bool(self._should_continue())

    @classmethod
    def unlimited(cls) -> "CpuBudget":
        return cls(lambda: True)

    @classmethod
    def from_seconds(cls, seconds: float, clock: Callable[[], float] = time.perf_counter) -> "CpuBudget":
        deadline = clock() + seconds
        return cls(lambda: clock() < deadline)

    @classmethod
    def steps(cls, count: int) -> "CpuBudget":
        """Allow exactly ``count`` stages."""
        remaining = [count]

        def check() -> bool:
            if remaining[0] <= 0:
                return False
            remaining[0] -= 1
            return True

        return cls(check)


# =========================
# Persisted State
# =========================

@dataclass
class PlanningState:
    room_name: str
    config: Dict[str, Any]
    stage: Stage = Stage.ANALYSIS
    queue: List[HubCandidate] = field(default_factory=list)
    current: Optional[HubCandidate] = None
    partial: Optional[CandidatePlan] = None
    results: List[Dict[str, Any]] = field(default_factory=list)
    best: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
    stages_run: int = 0

    @property
    def status(self) -> str:
        if self.stage == Stage.COMPLETE:
            return "complete"
        if self.stage == Stage.FAILED:
            return "failed"
        return "running"

    @property
    def attempts(self) -> int:
        return len(self.results)

    @property
    def plan(self) -> Optional[Plan]:
        if self.stage != Stage.COMPLETE or self.best is None:
            return None
        return Plan.from_dict(self.best["plan"])

    def progress(self) -> Dict[str, Any]:
        return {
            "room": self.room_name,
            "status": self.status,
            "stage": self.stage.value,
            "evaluated": self.attempts,
            "remaining": len(self.queue) + (1 if self.current else 0),
            "best_score": self.best["score"] if self.best else None,
            "last_error": self.last_error,
            "stages_run": self.stages_run,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "room_name": self.room_name,
            "config": self.config,
            "stage": self.stage.value,
            "queue": [c.to_dict() for c in self.queue],
            "current": self.current.to_dict() if self.current else None,
            "partial": self.partial.to_dict() if self.partial else None,
            "results": list(self.results),
            "best": self.best,
            "last_error": self.last_error,
            "stages_run": self.stages_run,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlanningState":
        return cls(
            room_name=data["room_name"],
            config=merge_config(data.get("config")),
            stage=Stage(data.get("stage", Stage.ANALYSIS.value)),
            queue=[HubCandidate.from_dict(c) for c in data.get("queue", [])],
            current=HubCandidate.from_dict(data["current"]) if data.get("current") else None,
            partial=CandidatePlan.from_dict(data["partial"]) if data.get("partial") else None,
            results=list(data.get("results", [])),
            best=data.get("best"),
            last_error=data.get("last_error"),
            stages_run=int(data.get("stages_run", 0)),
        )

    @classmethod
    def start(cls, room: RoomDataSource, config: Optional[Dict[str, Any]] = None) -> "PlanningState":
        return cls(room_name=room.name, config=merge_config(config))


# =========================
# Planner
# =========================

class Planner:
    """Drives one PlanningState forward against one room."""

    def __init__(self, room: RoomDataSource, state: Optional[PlanningState] = None,
                 config: Optional[Dict[str, Any]] = None):
        self.room = room
        self.state = state or PlanningState.start(room, config)
        self._analysis: Optional[RoomAnalysis] = None
        self._ctx: Optional[PlanningContext] = None

    @property
    def config(self) -> Dict[str, Any]:
        return self.state.config

    def analysis(self) -> RoomAnalysis:
        if self._analysis is None:
            self._analysis = analyze_room(self.room, int(self.config["exit_setback"]))
        return self._analysis

    def _context(self) -> PlanningContext:
        if self._ctx is None or self._ctx.plan is not self.state.partial:
            self._ctx = PlanningContext(self.room, self.analysis(), self.config, self.state.partial)
        return self._ctx

    # =========================
    # Stage execution
    # =========================

    def _next_candidate(self):
        state = self.state
        state.current = None
        state.partial = None
        self._ctx = None
        state.stage = Stage.HUB if state.queue else Stage.FINALIZE

    def _discard(self, error: PlanningError):
        state = self.state
        state.last_error = error.kind
        state.results.append({
            "candidate": state.current.to_dict() if state.current else None,
            "score": None,
            "error": error.to_dict(),
            "stage": state.stage.value,
        })
        if DEBUG:
            print(f"[DEBUG] candidate discarded at {state.stage.value}: {error.message}")
        self._next_candidate()

    def _record(self):
        state = self.state
        ctx = self._context()
        score = score_plan(ctx.plan, ctx.grid, self.config, ctx.analysis.points_of_interest)
        generation = state.current.generation
        state.results.append({
            "candidate": state.current.to_dict(),
            "score": score.total,
            "error": None,
            "stage": Stage.SCORE.value,
        })
        best = state.best
        if best is None or score.total > best["score"] or (
            score.total == best["score"] and generation < best["generation"]
        ):
            plan = Plan.from_candidate(self.room.name, ctx.plan, score)
            state.best = {"score": score.total, "generation": generation, "plan": plan.to_dict()}
        self._next_candidate()

    def step(self):
        """Run exactly one stage."""
        state = self.state
        stage = state.stage
        state.stages_run += 1

        if stage == Stage.ANALYSIS:
            self.analysis()
            state.stage = Stage.CANDIDATES

        elif stage == Stage.CANDIDATES:
            analysis = self.analysis()
            raw = forced_candidates(self.config)
            if raw is None:
                raw = list(generate_candidates(analysis, self.config))
            state.queue = rank_hub_candidates(raw, analysis, self.config)
            if not state.queue:
                state.last_error = "NoValidHubPlacement"
                state.stage = Stage.FAILED
            else:
                state.stage = Stage.HUB

        elif stage == Stage.HUB:
            state.current = state.queue.pop(0)
            state.partial = CandidatePlan()
            try:
                place_hub(self._context(), state.current)
            except PlanningError as e:
                self._discard(e)
                return
            state.stage = NEXT_STAGE[stage]

        elif stage in CANDIDATE_STEPS:
            try:
                CANDIDATE_STEPS[stage](self._context())
            except PlanningError as e:
                self._discard(e)
                return
            state.stage = NEXT_STAGE[stage]

        elif stage == Stage.SCORE:
            self._record()

        elif stage == Stage.FINALIZE:
            state.stage = Stage.COMPLETE if state.best is not None else Stage.FAILED

    def tick(self, budget: Optional[CpuBudget] = None) -> PlanningState:
        """Run stages until the plan is finished or the budget says stop."""
        budget = budget or CpuBudget.unlimited()
        while self.state.stage not in TERMINAL_STAGES:
            if not budget.should_continue():
                break
            self.step()
        return self.state

    def run(self, budget: Optional[CpuBudget] = None) -> Plan:
        """Tick and return the finished plan.

        Raises:
            BudgetExceeded: If the budget ran out first; resume with
                ``exc.state``.
            PlanningFailed: If every candidate was discarded.
        """
        state = self.tick(budget)
        if state.stage == Stage.COMPLETE:
            return state.plan
        if state.stage == Stage.FAILED:
            raise PlanningFailed(state.last_error, state.attempts)
        raise BudgetExceeded(state)


def tick(state: PlanningState, room: RoomDataSource,
         budget: Optional[CpuBudget] = None) -> PlanningState:
    """Resume ``state`` against ``room`` for one budget slice."""
    return Planner(room, state).tick(budget)


def plan_room(room: RoomDataSource, config: Optional[Dict[str, Any]] = None,
              budget: Optional[CpuBudget] = None) -> Plan:
    """Plan a room from scratch in one call (see Planner.run)."""
    return Planner(room, config=config).run(budget)
