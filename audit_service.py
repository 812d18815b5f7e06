"""Audit logging service for planning sessions.

This module records what the planner did for each room: sessions started,
budget slices run, candidates discarded, and the final outcome.
"""

import json
from typing import Any, Dict, List, Optional

from database import PlanEvent, SessionLocal


class PlanningLogger:
    """Service for logging planning events."""

    @staticmethod
    def log_event(
        room_name: str,
        event: str,
        stage: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> None:
        """Persist one planning event.

        Args:
            room_name: Room the event belongs to.
            event: Event kind (started, tick, candidate_failed, complete, failed).
            stage: Pipeline stage at the time of the event.
            detail: Event specifics, stored as JSON.
            description: Optional human-readable description.
        """
        db = SessionLocal()
        try:
            entry = PlanEvent(
                room_name=room_name,
                event=event,
                stage=stage,
                detail=json.dumps(detail) if detail is not None else None,
                description=description or f"{event} {room_name}",
            )
            db.add(entry)
            db.commit()
        finally:
            db.close()

    @staticmethod
    def log_started(room_name: str, config_overrides: Optional[Dict[str, Any]] = None) -> None:
        PlanningLogger.log_event(
            room_name,
            "started",
            stage="analysis",
            detail={"overrides": config_overrides or {}},
            description=f"Started planning {room_name}",
        )

    @staticmethod
    def log_tick(room_name: str, before: Dict[str, Any], after: Dict[str, Any]) -> None:
        """Log one budget slice with the progress before and after it."""
        ran = after.get("stages_run", 0) - before.get("stages_run", 0)
        PlanningLogger.log_event(
            room_name,
            "tick",
            stage=after.get("stage"),
            detail={"before": before, "after": after},
            description=f"Ran {ran} stage(s) on {room_name}: "
            f"{before.get('stage')} -> {after.get('stage')}",
        )

    @staticmethod
    def log_candidate_failures(room_name: str, results: List[Dict[str, Any]]) -> None:
        """Log each discarded candidate in ``results``."""
        for result in results:
            error = result.get("error")
            if not error:
                continue
            PlanningLogger.log_event(
                room_name,
                "candidate_failed",
                stage=result.get("stage"),
                detail=result,
                description=f"Discarded candidate in {room_name}: {error.get('message')}",
            )

    @staticmethod
    def log_outcome(room_name: str, status: str, summary: Dict[str, Any]) -> None:
        PlanningLogger.log_event(
            room_name,
            status,
            stage=status,
            detail=summary,
            description=f"Planning {status} for {room_name}",
        )

    @staticmethod
    def get_events(
        room_name: Optional[str] = None,
        event: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve planning events with optional filtering.

        Args:
            room_name: Filter by room.
            event: Filter by event kind.
            limit: Maximum number of events to return.
            offset: Number of events to skip.

        Returns:
            List of events as dictionaries, newest first.
        """
        db = SessionLocal()
        try:
            query = db.query(PlanEvent)

            if room_name:
                query = query.filter(PlanEvent.room_name == room_name)
            if event:
                query = query.filter(PlanEvent.event == event)

            query = query.order_by(PlanEvent.timestamp.desc(), PlanEvent.id.desc())
            query = query.offset(offset).limit(limit)

            return [e.to_dict() for e in query.all()]
        finally:
            db.close()
