"""
Server modules for the Room Planner application.

This package contains FastAPI router modules for the planning session API,
the admin config editor and SSE broadcasting.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""
