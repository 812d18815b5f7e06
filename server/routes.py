"""
Planning session API routes.

Each room has one planning session. The session's PlanningState is stored
as JSON between requests, so a client drives planning forward in small
budgeted ticks and picks up the finished plan once the state completes.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel

from audit_service import PlanningLogger
from database import PlanningSession, SessionLocal
from planner.config import apply_overrides, load_config
from planner.errors import PlanningFailed
from planner.pipeline import CpuBudget, Planner, PlanningState
from planner.plan import Plan
from planner.render import render_plan_to_image
from planner.room_data import StaticRoomData
from planner.validation import (
    parse_existing_structures,
    parse_room_payload,
    sanitise_room_name,
    sanitise_tier,
)

router = APIRouter()


class RoomCreate(BaseModel):
    """Request model for starting (or restarting) a planning session."""

    room: Dict[str, Any]
    config: Optional[Dict[str, Any]] = None


class TickRequest(BaseModel):
    """Budget for one planning slice; stage count wins over seconds."""

    budget_seconds: Optional[float] = None
    max_stages: Optional[int] = None


class OperationsRequest(BaseModel):
    """Snapshot of live structures to diff against the plan."""

    tier: int
    existing: List[Dict[str, Any]] = []


# =========================
# Helpers
# =========================

def _get_session(db, room: str) -> PlanningSession:
    room = sanitise_room_name(room)
    session = db.query(PlanningSession).filter(PlanningSession.room_name == room).first()
    if session is None:
        raise HTTPException(404, f"No planning session for room {room}")
    return session


def _state_of(session: PlanningSession) -> PlanningState:
    return PlanningState.from_dict(json.loads(session.state))


def _room_of(session: PlanningSession) -> StaticRoomData:
    return StaticRoomData.from_dict(json.loads(session.room_data))


def _store_state(session: PlanningSession, state: PlanningState):
    session.state = json.dumps(state.to_dict())
    session.stage = state.stage.value
    session.status = state.status


def _tick_limits(request: TickRequest, state: PlanningState) -> Tuple[Optional[int], float]:
    """Stage count and seconds for one slice, clamped to the configured limits.

    Raises:
        HTTPException: 400 when the requested budget is empty.
    """
    opts = state.config["pipeline"]
    if request.max_stages is not None:
        if request.max_stages < 1:
            raise HTTPException(400, "max_stages must be at least 1")
        return min(request.max_stages, int(opts["max_tick_stages"])), 0.0
    seconds = request.budget_seconds
    if seconds is None:
        seconds = float(opts["tick_seconds"])
    if seconds <= 0:
        raise HTTPException(400, "budget_seconds must be positive")
    return None, min(seconds, float(opts["max_tick_seconds"]))


def _budget(request: TickRequest, state: PlanningState) -> CpuBudget:
    stages, seconds = _tick_limits(request, state)
    if stages is not None:
        return CpuBudget.steps(stages)
    return CpuBudget.from_seconds(seconds)


def _finished_plan(state: PlanningState) -> Plan:
    """Plan of a completed state.

    Raises:
        HTTPException: 422 when planning failed, 404 while still running.
    """
    if state.status == "failed":
        error = PlanningFailed(state.last_error, state.attempts)
        raise HTTPException(422, error.to_dict())
    plan = state.plan
    if plan is None:
        raise HTTPException(404, f"Plan for {state.room_name} is not ready (stage {state.stage.value})")
    return plan


def _status(session: PlanningSession, state: PlanningState) -> Dict[str, Any]:
    result = session.to_dict()
    result["progress"] = state.progress()
    return result


# =========================
# Sessions
# =========================

@router.post("/api/rooms")
async def create_room(data: RoomCreate):
    """Start planning a room, replacing any earlier session for it.

    Args:
        data: Room payload and optional per-room config overrides.

    Returns:
        Session status.
    """
    room = parse_room_payload(data.room)
    config = apply_overrides(load_config(), data.config)
    state = PlanningState.start(room, config)

    db = SessionLocal()
    try:
        session = db.query(PlanningSession).filter(PlanningSession.room_name == room.name).first()
        if session is None:
            session = PlanningSession(room_name=room.name)
            db.add(session)
        session.room_data = json.dumps(room.to_dict())
        _store_state(session, state)
        db.commit()
        db.refresh(session)
        result = _status(session, state)
    finally:
        db.close()

    print(f"Planning session started for {room.name}")
    PlanningLogger.log_started(room.name, data.config)

    from server.broadcast import notify_planning_progress

    await notify_planning_progress(state.progress())
    return result


@router.post("/api/rooms/{room}/tick")
async def tick_room(room: str, request: Optional[TickRequest] = None):
    """Advance a session by one budgeted slice.

    Returns:
        Session status after the slice.
    """
    request = request or TickRequest()
    db = SessionLocal()
    try:
        session = _get_session(db, room)
        state = _state_of(session)
        was_running = state.status == "running"
        before = state.progress()
        seen = len(state.results)

        planner = Planner(_room_of(session), state)
        # Planning is CPU bound; keep it off the event loop
        await run_in_threadpool(planner.tick, _budget(request, state))

        _store_state(session, state)
        db.commit()
        db.refresh(session)
        result = _status(session, state)
    finally:
        db.close()

    after = state.progress()
    PlanningLogger.log_tick(state.room_name, before, after)
    PlanningLogger.log_candidate_failures(state.room_name, state.results[seen:])
    if was_running and state.status != "running":
        summary = state.plan.summary() if state.plan else after
        PlanningLogger.log_outcome(state.room_name, state.status, summary)
        print(f"Planning {state.status} for {state.room_name} after {state.attempts} candidate(s)")

    from server.broadcast import notify_planning_progress

    await notify_planning_progress(after)
    return result


@router.get("/api/rooms")
def list_rooms():
    db = SessionLocal()
    try:
        sessions = db.query(PlanningSession).order_by(PlanningSession.room_name).all()
        return {"rooms": [s.to_dict() for s in sessions]}
    finally:
        db.close()


@router.get("/api/rooms/{room}")
def get_room(room: str):
    db = SessionLocal()
    try:
        session = _get_session(db, room)
        return _status(session, _state_of(session))
    finally:
        db.close()


@router.get("/api/rooms/{room}/events")
def get_room_events(room: str, limit: int = 100, offset: int = 0):
    room = sanitise_room_name(room)
    return {"events": PlanningLogger.get_events(room_name=room, limit=limit, offset=offset)}


# =========================
# Plans
# =========================

@router.get("/api/rooms/{room}/plan")
def get_plan(room: str):
    """Finished plan with its summary.

    Raises:
        HTTPException: 404 while planning runs, 422 if it failed.
    """
    db = SessionLocal()
    try:
        state = _state_of(_get_session(db, room))
    finally:
        db.close()
    plan = _finished_plan(state)
    return {"summary": plan.summary(), "plan": plan.to_dict()}


@router.post("/api/rooms/{room}/operations")
def get_operations(room: str, data: OperationsRequest):
    """Construction and cleanup operations for a tier and live snapshot.

    Args:
        room: Room name.
        data: Current tier and existing structures.

    Returns:
        Ordered build operations, cleanup operations and completion flag.
    """
    tier = sanitise_tier(data.tier)
    existing = parse_existing_structures(data.existing)

    db = SessionLocal()
    try:
        state = _state_of(_get_session(db, room))
    finally:
        db.close()
    plan = _finished_plan(state)

    return {
        "tier": tier,
        "build": [op.to_dict() for op in plan.get_build_operations(tier, existing)],
        "cleanup": [op.to_dict() for op in plan.get_cleanup_operations(tier, existing)],
        "complete": plan.is_complete(existing),
    }


@router.get("/api/rooms/{room}/plan.png")
def get_plan_image(room: str):
    """Download the finished plan as a PNG image."""
    db = SessionLocal()
    try:
        session = _get_session(db, room)
        state = _state_of(session)
        room_data = _room_of(session)
    finally:
        db.close()
    plan = _finished_plan(state)

    png = render_plan_to_image(plan, room_data.get_terrain(), room_data.points_of_interest())
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename={plan.room_name}.png"},
    )
