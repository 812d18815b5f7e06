"""
Room Planner application.

A FastAPI-powered service that plans the full construction layout of a
50x50 tile room: hub, extensions, towers, labs, point infrastructure and
the road network joining them, with per-tier build diffs.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""
