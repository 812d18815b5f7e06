"""
Room Planner FastAPI Application

Main entry point for the Room Planner service, serving the planning session
REST API, plan images and real-time planning progress.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse

from database import init_db
from server.admin import router as admin_router
from server.broadcast import event_generator, subscribe
from server.routes import router as routes_router

# Load environment variables
load_dotenv()

init_db()

app = FastAPI(title="Room Planner")

# Include all routers
app.include_router(routes_router)
app.include_router(admin_router)

# ============================================================
# SSE Endpoint
# ============================================================


@app.get("/api/stream")
async def stream(request: Request):
    """Server-Sent Events (SSE) endpoint for real-time updates.

    Clients connect to this endpoint to receive planning progress after every
    tick and a notification whenever the planner config changes.

    Args:
        request: FastAPI request object.

    Returns:
        StreamingResponse with text/event-stream content type.
    """
    queue = subscribe()
    return StreamingResponse(event_generator(queue), media_type="text/event-stream")
