"""
Configuration management module.

This module provides utilities for loading, saving, and managing the planner
configuration stored in planner_config.json. Every tuning constant of the
pipeline (weights, thresholds, tie-break knobs) lives here rather than in the
algorithm modules.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import copy
import json
import os
from typing import Any, Dict, Optional

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_PATH = os.path.join(BASE_DIR, "planner_config.json")


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from planner_config.json.

    Args:
        path: Optional override of the config file location.

    Returns:
        Configuration dictionary with all required fields ensured.
    """
    try:
        with open(path or CONFIG_PATH, "r", encoding="utf-8") as f:
            config = json.load(f)
    except FileNotFoundError:
        config = get_default_config()

    # Ensure all required fields are present
    config = ensure_config_fields(config)
    return config


def save_config(config: Dict[str, Any], path: Optional[str] = None):
    """Save configuration to planner_config.json.

    Args:
        config: Configuration dictionary to save.
        path: Optional override of the config file location.
    """
    with open(path or CONFIG_PATH, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)


def read_config_text(path: Optional[str] = None) -> str:
    """Raw text of the config file, defaults serialized when it is missing."""
    try:
        with open(path or CONFIG_PATH, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return json.dumps(get_default_config(), indent=2)


def get_default_config() -> Dict[str, Any]:
    """Get default configuration structure.

    Returns:
        Default configuration dictionary.
    """
    return {
        "candidates": {
            "stride": 2,
            "min_openness": 2,
            "min_heuristic": 0.15,
            "max_candidates": 6,
            "variants_per_anchor": 2,
            "openness_weight": 0.5,
            "proximity_weight": 0.5,
        },
        "hub": {
            "edge_clearance": 4,
            "forced": None,
        },
        "hub_weights": {
            "source": 1.0,
            "controller": 1.0,
            "mineral": 0.5,
        },
        "exit_setback": 3,
        "extensions": {
            "count": 60,
            "min_hub_spacing": 2,
            "strategies": ["stamp_fit", "flood_fill"],
        },
        "structures": {
            "spawns": 3,
            "spawn_min_range": 2,
            "spawn_max_range": 8,
            "spawn_spacing": 2,
            "towers": 6,
            "tower_min_range": 2,
            "tower_max_range": 6,
            "labs": True,
            "observer": True,
        },
        "infrastructure": {
            "link_budget": 3,
            "controller_range": 2,
            "mineral": True,
        },
        "defense": {
            "enabled": True,
            "buffer": 3,
            "controller_buffer": 1,
            "remote_range": 2,
        },
        "roads": {
            "swamp_cost": 3,
            "prune_radius": 4,
        },
        "reachability": {
            "detour_ratio": 2,
            "detour_threshold": 8,
        },
        "tiers": {
            "category_priority": [
                "hub",
                "defense",
                "source",
                "mineral",
                "controller",
                "lab",
                "extension",
                "utility",
            ],
            "default_road_tier": 2,
            "caps": {},
        },
        "scoring": {
            "weights": {
                "path_length": 3.0,
                "compactness": 1.5,
                "wasted_tiles": 1.0,
                "defensibility": 1.0,
                "extension_efficiency": 1.0,
                "upkeep": 0.5,
                "tower_coverage": 1.0,
                "hub_quality": 1.5,
                "upgrade_area": 0.5,
            },
            "defense_margin": 3,
            "max_path_length": 50,
        },
        "pipeline": {
            "tick_seconds": 0.05,
            "max_tick_seconds": 5.0,
            "max_tick_stages": 10000,
        },
    }


def _fill_defaults(target: Dict[str, Any], defaults: Dict[str, Any]):
    for key, default in defaults.items():
        if isinstance(default, dict):
            current = target.setdefault(key, {})
            if isinstance(current, dict):
                _fill_defaults(current, default)
        else:
            target.setdefault(key, default)


def ensure_config_fields(config: Dict[str, Any]) -> Dict[str, Any]:
    """Ensure all required fields are present in the configuration.

    Nested sections are filled key by key so a partial override keeps the
    defaults it does not mention.

    Args:
        config: Configuration dictionary to update.

    Returns:
        Updated configuration dictionary.
    """
    _fill_defaults(config, get_default_config())
    return config


def merge_config(overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Defaults with ``overrides`` applied on top (nested sections merged)."""
    merged = copy.deepcopy(overrides or {})
    return ensure_config_fields(merged)


def apply_overrides(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of ``base`` with ``overrides`` merged in section by section."""
    result = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = apply_overrides(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
