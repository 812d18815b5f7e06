"""
Admin routes for configuration management.

This module provides administrative endpoints for directly editing the
planner_config.json file that holds every planner weight and threshold.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import json

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from planner import config as planner_config

router = APIRouter()


class ConfigUpdate(BaseModel):
    """Request model for updating configuration."""

    content: str


@router.get("/api/admin/config")
def get_config():
    """Get the raw planner_config.json content.

    Returns:
        Dictionary containing the raw JSON content as a string, the defaults
        when no file has been written yet.

    Raises:
        HTTPException: If config file cannot be read.
    """
    try:
        return {"content": planner_config.read_config_text()}
    except OSError as e:
        raise HTTPException(
            status_code=500, detail=f"Error reading config file: {str(e)}"
        )


@router.get("/api/admin/config/effective")
def get_effective_config():
    """Config as the planner sees it, defaults filled in."""
    return planner_config.load_config()


@router.post("/api/admin/config")
async def update_config(data: ConfigUpdate):
    """Update the planner_config.json file with new content.

    Validates that the content is a JSON object before saving.

    Args:
        data: ConfigUpdate object containing the new JSON content.

    Returns:
        Success message.

    Raises:
        HTTPException: If JSON is invalid or file cannot be saved.
    """
    try:
        # Validate JSON
        parsed_config = json.loads(data.content)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON: {str(e)}")

    if not isinstance(parsed_config, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON: config must be an object")

    try:
        planner_config.save_config(parsed_config)
    except OSError as e:
        raise HTTPException(
            status_code=500, detail=f"Error saving config file: {str(e)}"
        )

    # Notify connected clients about the update
    from server.broadcast import notify_config_updated

    await notify_config_updated()

    return {"success": True, "message": "Configuration updated successfully"}
