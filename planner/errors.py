"""
Planner error types.

Every failure the pipeline can surface derives from PlanningError and carries
a short ``kind`` string so failures can be counted, persisted and reported
without keeping the exception object around.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from typing import Optional


class PlanningError(Exception):
    """Base class for all planner failures."""

    kind = "PlanningError"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class OutOfBounds(PlanningError):
    """A location outside the room grid was queried."""

    kind = "OutOfBounds"

    def __init__(self, x: int, y: int):
        super().__init__(f"Location ({x}, {y}) is outside the room")
        self.x = x
        self.y = y


class NoValidHubPlacement(PlanningError):
    """No hub candidate satisfies the footprint and clearance rules."""

    kind = "NoValidHubPlacement"


class InsufficientSpace(PlanningError):
    """A placement stage could not fit the structures it requires."""

    kind = "InsufficientSpace"

    def __init__(self, stage: str, placed: int, required: int):
        super().__init__(
            f"{stage}: placed {placed} of {required} required structures"
        )
        self.stage = stage
        self.placed = placed
        self.required = required


class UnreachableStructure(PlanningError):
    """A structure or anchor cannot be walked to from the hub."""

    kind = "UnreachableStructure"

    def __init__(self, location, reason: str = "not reachable from hub"):
        super().__init__(f"{location} {reason}")
        self.location = location
        self.reason = reason


class NoDefensiblePerimeter(PlanningError):
    """The base cannot be sealed off from the room exits."""

    kind = "NoDefensiblePerimeter"


class BudgetExceeded(PlanningError):
    """The CPU budget ran out before planning finished.

    Not a failure: ``state`` holds everything needed to resume.
    """

    kind = "BudgetExceeded"

    def __init__(self, state):
        super().__init__("Planning budget exhausted, resume later")
        self.state = state


class PlanningFailed(PlanningError):
    """Every candidate was discarded without producing a plan."""

    kind = "PlanningFailed"

    def __init__(self, last_kind: Optional[str], attempts: int = 0):
        detail = last_kind or "no candidates"
        super().__init__(
            f"No plan possible after {attempts} candidate(s), last failure: {detail}"
        )
        self.last_kind = last_kind
        self.attempts = attempts
