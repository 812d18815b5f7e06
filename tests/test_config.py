"""
Tests for planner configuration loading and merging.

Run with: python -m pytest tests/test_config.py
"""

import json

from planner.config import (
    apply_overrides,
    ensure_config_fields,
    get_default_config,
    load_config,
    merge_config,
    read_config_text,
    save_config,
)


def test_missing_file_uses_defaults(tmp_path):
    path = tmp_path / "missing.json"
    assert load_config(str(path)) == get_default_config()
    assert json.loads(read_config_text(str(path))) == get_default_config()


def test_partial_file_keeps_other_defaults(tmp_path):
    path = tmp_path / "planner_config.json"
    path.write_text(json.dumps({"extensions": {"count": 30}}), encoding="utf-8")
    config = load_config(str(path))
    assert config["extensions"]["count"] == 30
    assert config["extensions"]["min_hub_spacing"] == 2
    assert config["roads"]["swamp_cost"] == 3


def test_save_and_load(tmp_path):
    path = str(tmp_path / "planner_config.json")
    config = get_default_config()
    config["hub"]["edge_clearance"] = 6
    save_config(config, path)
    assert load_config(path)["hub"]["edge_clearance"] == 6


def test_ensure_config_fields_leaves_values():
    config = ensure_config_fields({"exit_setback": 5})
    assert config["exit_setback"] == 5
    assert "scoring" in config


def test_merge_config_does_not_mutate_input():
    overrides = {"candidates": {"max_candidates": 1}}
    merged = merge_config(overrides)
    assert merged["candidates"]["max_candidates"] == 1
    assert merged["candidates"]["stride"] == 2
    assert overrides == {"candidates": {"max_candidates": 1}}


def test_apply_overrides_deep_merges_copy():
    base = get_default_config()
    result = apply_overrides(base, {"scoring": {"weights": {"upkeep": 9}}, "exit_setback": 1})
    assert result["scoring"]["weights"]["upkeep"] == 9
    assert result["scoring"]["weights"]["path_length"] == 3.0
    assert result["exit_setback"] == 1
    assert base["scoring"]["weights"]["upkeep"] == 0.5
    assert apply_overrides(base, None) == base


def test_repo_config_file_is_complete():
    config = load_config()
    assert set(get_default_config()) <= set(config)
