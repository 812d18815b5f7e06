"""
Server-sent events (SSE) broadcasting module.

This module handles real-time updates via Server-Sent Events, managing
subscriber connections and broadcasting planning progress and configuration
changes to all clients.

Author: Matthew Picone (mail@matthewpicone.com)
Date: 2026-02-02
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, Set

# Global set of SSE subscribers (asyncio.Queue instances)
subscribers: Set[asyncio.Queue] = set()


def subscribe() -> asyncio.Queue:
    """Register a new subscriber queue."""
    queue = asyncio.Queue()
    subscribers.add(queue)
    return queue


async def event_generator(queue: asyncio.Queue):
    """Generate SSE events from the queue.

    The queue is unsubscribed when the stream ends, whether the client
    disconnected or the response was closed.

    Args:
        queue: Async queue to read events from.

    Yields:
        SSE formatted event strings.
    """
    try:
        while True:
            data = await queue.get()
            yield f"data: {json.dumps(data)}\n\n"
    except asyncio.CancelledError:
        pass
    finally:
        subscribers.discard(queue)


async def broadcast(payload: Dict[str, Any]):
    """Push ``payload`` to every SSE subscriber, stamped with the current time."""
    payload = dict(payload, time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
    for queue in list(subscribers):
        await queue.put(payload)


async def notify_planning_progress(progress: Dict[str, Any]):
    """Broadcast a PlanningState progress snapshot."""
    await broadcast({"type": "planning_progress", **progress})


async def notify_config_updated():
    """Load config and broadcast update notification to all SSE subscribers."""
    from planner.config import load_config

    config = load_config()
    await broadcast({"type": "config_update", "sections": sorted(config)})
