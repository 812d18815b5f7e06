"""
Validation and sanitization utilities.

This module contains functions for validating room payloads and structure
snapshots received over HTTP before they reach the planner.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import re
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from .plan import ExistingStructure
from .room_data import StaticRoomData
from .structures import MAX_TIER, parse_structure_type
from .terrain import ROOM_SIZE, Location

MAX_ROOM_NAME_LEN = 32
ROOM_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")
MAX_SOURCES = 4


def sanitise_room_name(value: Any) -> str:
    """Sanitize and validate a room name.

    Raises:
        HTTPException: If the name is empty, too long or has odd characters.
    """
    if not isinstance(value, str):
        raise HTTPException(400, "Room name must be a string")
    value = value.strip()
    if not value:
        raise HTTPException(400, "Room name is required")
    if len(value) > MAX_ROOM_NAME_LEN:
        raise HTTPException(400, "Room name too long")
    if not ROOM_NAME_PATTERN.match(value):
        raise HTTPException(400, "Room name may only contain letters, digits, '_' and '-'")
    return value


def sanitise_int(value: Any, *, allow_none: bool = False) -> Optional[int]:
    """Sanitize and validate integer values.

    Args:
        value: Value to convert to integer.
        allow_none: Whether None is an acceptable value.

    Returns:
        Integer value or None if allowed.

    Raises:
        HTTPException: If value cannot be converted to integer.
    """
    if value is None and allow_none:
        return None
    if isinstance(value, bool):
        raise HTTPException(400, "Invalid numeric value")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(400, "Invalid numeric value")


def sanitise_tier(value: Any) -> int:
    tier = sanitise_int(value)
    if not 0 <= tier <= MAX_TIER:
        raise HTTPException(400, f"Tier must be between 0 and {MAX_TIER}")
    return tier


def is_within_bounds(x: int, y: int) -> bool:
    """Check if (x, y) lies inside the room."""
    return 0 <= x < ROOM_SIZE and 0 <= y < ROOM_SIZE


def sanitise_location(value: Any, field: str) -> List[int]:
    """Validate an ``[x, y]`` pair or ``{"x", "y"}`` dict.

    Returns:
        The location as ``[x, y]``.

    Raises:
        HTTPException: If the value is malformed or outside the room.
    """
    if isinstance(value, dict):
        x, y = value.get("x"), value.get("y")
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        x, y = value
    else:
        raise HTTPException(400, f"{field} must be [x, y] or {{x, y}}")
    x = sanitise_int(x)
    y = sanitise_int(y)
    if not is_within_bounds(x, y):
        raise HTTPException(400, f"{field} ({x},{y}) is outside the room")
    return [x, y]


def _sanitise_terrain(raw: Any) -> Any:
    if isinstance(raw, str):
        if len(raw) != ROOM_SIZE * ROOM_SIZE or not raw.isdigit():
            raise HTTPException(400, f"Terrain string must be {ROOM_SIZE * ROOM_SIZE} digits")
        return raw
    if not isinstance(raw, list) or len(raw) != ROOM_SIZE:
        raise HTTPException(400, f"Terrain must have {ROOM_SIZE} rows")
    for row in raw:
        if isinstance(row, str):
            ok = len(row) == ROOM_SIZE and row.isdigit()
        else:
            ok = isinstance(row, list) and len(row) == ROOM_SIZE and all(
                isinstance(v, int) and not isinstance(v, bool) for v in row
            )
        if not ok:
            raise HTTPException(400, f"Each terrain row must hold {ROOM_SIZE} codes")
    return raw


def parse_room_payload(data: Dict[str, Any]) -> StaticRoomData:
    """Validate a room payload and build the room data source.

    Args:
        data: Dict with ``name``, ``terrain``, ``sources`` and optional
            ``controller`` and ``mineral``.

    Returns:
        StaticRoomData for the planner.

    Raises:
        HTTPException: On any malformed field.
    """
    if not isinstance(data, dict):
        raise HTTPException(400, "Room payload must be an object")
    if "terrain" not in data:
        raise HTTPException(400, "Room terrain is required")

    sources = data.get("sources") or []
    if not isinstance(sources, list) or len(sources) > MAX_SOURCES:
        raise HTTPException(400, f"Sources must be a list of at most {MAX_SOURCES} points")

    clean: Dict[str, Any] = {
        "name": sanitise_room_name(data.get("name")),
        "terrain": _sanitise_terrain(data["terrain"]),
        "sources": [sanitise_location(s, "source") for s in sources],
        "controller": None,
        "mineral": None,
    }
    if data.get("controller") is not None:
        clean["controller"] = sanitise_location(data["controller"], "controller")
    mineral = data.get("mineral")
    if mineral is not None:
        x, y = sanitise_location(mineral, "mineral")
        mineral_type = mineral.get("type", "") if isinstance(mineral, dict) else ""
        clean["mineral"] = {"x": x, "y": y, "type": str(mineral_type)[:8]}

    points = clean["sources"] + [p for p in (clean["controller"],) if p]
    if clean["mineral"]:
        points.append([clean["mineral"]["x"], clean["mineral"]["y"]])
    if len({tuple(p) for p in points}) != len(points):
        raise HTTPException(400, "Points of interest must not share a tile")

    try:
        return StaticRoomData.from_dict(clean)
    except ValueError as e:
        raise HTTPException(400, str(e))


def parse_existing_structures(entries: Any) -> List[ExistingStructure]:
    """Validate a live structure snapshot.

    Each entry is ``{"x", "y", "structure_type", "has_store"?}``.

    Raises:
        HTTPException: On unknown structure types or bad coordinates.
    """
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise HTTPException(400, "Existing structures must be a list")
    result = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise HTTPException(400, "Each existing structure must be an object")
        x, y = sanitise_location(entry, "structure")
        try:
            structure_type = parse_structure_type(entry.get("structure_type"))
        except ValueError:
            raise HTTPException(400, f"Unknown structure type: {entry.get('structure_type')}")
        result.append(ExistingStructure(Location(x, y), structure_type, bool(entry.get("has_store", False))))
    return result
