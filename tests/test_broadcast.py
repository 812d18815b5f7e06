"""
Tests for SSE subscriber bookkeeping.

Run with: python -m pytest tests/test_broadcast.py
"""

import asyncio

from server.broadcast import broadcast, event_generator, subscribe, subscribers


def test_closed_stream_unsubscribes():
    async def scenario():
        queue = subscribe()
        stream = event_generator(queue)
        await broadcast({"type": "planning_progress", "room": "W1N1"})
        first = await stream.__anext__()
        assert first.startswith("data: ")
        assert '"room": "W1N1"' in first
        await stream.aclose()
        return queue

    queue = asyncio.run(scenario())
    assert queue not in subscribers


def test_cancelled_stream_unsubscribes():
    async def scenario():
        queue = subscribe()

        async def consume():
            async for _ in event_generator(queue):
                pass

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        assert queue in subscribers
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return queue

    queue = asyncio.run(scenario())
    assert queue not in subscribers


def test_broadcast_skips_closed_streams():
    async def scenario():
        queue = subscribe()
        stream = event_generator(queue)
        await broadcast({"type": "config_update"})
        await stream.__anext__()
        await stream.aclose()
        await broadcast({"type": "config_update"})
        return queue

    queue = asyncio.run(scenario())
    assert queue.qsize() == 0
