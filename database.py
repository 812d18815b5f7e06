"""Database setup and models for planning sessions.

This module provides the database connection, models, and utilities
for persisting resumable planning state and the planning event trail
using SQLAlchemy. SQLite is the default; set PLANNER_DATABASE_URL to
point elsewhere.
"""

import os
from datetime import datetime

from dotenv import load_dotenv
from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()

# Database setup
DATABASE_URL = os.getenv("PLANNER_DATABASE_URL", "sqlite:///./room_planner.db")
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


class PlanningSession(Base):
    """One room's planning run, resumable across requests.

    Attributes:
        id: Primary key auto-incrementing ID.
        room_name: Name of the planned room (unique).
        room_data: Room payload as JSON (terrain and points of interest).
        state: Serialized PlanningState as JSON.
        stage: Current pipeline stage, mirrored for cheap listing.
        status: running, complete or failed.
        created_at: When the session was started.
        updated_at: When the state last advanced.
    """

    __tablename__ = "planning_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    room_name = Column(String(64), nullable=False, unique=True, index=True)
    room_data = Column(Text, nullable=False)
    state = Column(Text, nullable=False)
    stage = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        """Convert the session row to a status dictionary.

        Returns:
            Dictionary without the bulky room and state payloads.
        """
        return {
            "id": self.id,
            "room": self.room_name,
            "stage": self.stage,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PlanEvent(Base):
    """Audit trail entry for a planning session.

    Attributes:
        id: Primary key auto-incrementing ID.
        timestamp: When the event occurred.
        room_name: Room the event belongs to.
        event: Event kind (started, tick, candidate_failed, complete, failed).
        stage: Pipeline stage at the time of the event.
        detail: JSON payload with event specifics.
        description: Human-readable description.
    """

    __tablename__ = "plan_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    room_name = Column(String(64), nullable=False, index=True)
    event = Column(String(50), nullable=False)
    stage = Column(String(32), nullable=True)
    detail = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "room": self.room_name,
            "event": self.event,
            "stage": self.stage,
            "detail": self.detail,
            "description": self.description,
        }


def init_db():
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)
