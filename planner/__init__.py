"""
Room planner core.

This package contains the construction planning pipeline: terrain analysis,
hub and structure placement, road synthesis, validation, tier assignment,
scoring and the frozen plan with its diff queries.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""
