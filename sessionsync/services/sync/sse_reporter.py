"""
SSE (Server-Sent Events) progress reporter implementation.

Producer side of the sync stream: encodes ``progress`` and ``done`` events
in the wire format the controller consumes. Meant for Python servers
that run the sync, and for building test streams.
"""

import asyncio
import json
from typing import Any, AsyncIterator

from pydantic import BaseModel

from sessionsync.schemas.sync import SyncProgress, SyncStats
from .dispatcher import DONE_EVENT, PROGRESS_EVENT


def format_sse_event(event: str, data: Any, *, line_ending: str = "\n") -> str:
    """
    Encode one event.

    ``data`` is JSON-encoded (pydantic models via ``model_dump``). A payload
    that encodes to several lines becomes several ``data:`` lines.

    Example:
        format_sse_event("done", {"synced": 1})
        -> 'event: done\\ndata: {"synced": 1}\\n\\n'
    """
    if isinstance(data, BaseModel):
        data = data.model_dump()
    payload = data if isinstance(data, str) else json.dumps(data)
    lines = [f"event: {event}"]
    lines.extend(f"data: {part}" for part in payload.split("\n"))
    return line_ending.join(lines) + line_ending * 2


class SSEProgressReporter:
    """
    Progress reporter that pushes events to an asyncio.Queue for SSE streaming.

    Usage:
        queue = asyncio.Queue()
        reporter = SSEProgressReporter(queue)

        await reporter.report_progress(progress)
        await reporter.report_done(stats)
        await reporter.signal_end()

        # In the response body generator:
        async for frame in iter_sse(queue):
            yield frame
    """

    def __init__(self, queue: asyncio.Queue):
        self.queue = queue

    async def report_progress(self, progress: SyncProgress) -> None:
        """Report a progress update."""
        await self.queue.put({
            "event": PROGRESS_EVENT,
            "data": progress.model_dump(),
        })

    async def report_done(self, stats: SyncStats) -> None:
        """Report completion."""
        await self.queue.put({
            "event": DONE_EVENT,
            "data": stats.model_dump(),
        })

    async def signal_end(self) -> None:
        """Signal end of stream."""
        await self.queue.put(None)


async def iter_sse(queue: asyncio.Queue, *, line_ending: str = "\n") -> AsyncIterator[str]:
    """Yield encoded frames from a reporter queue until the end sentinel."""
    while True:
        item = await queue.get()
        if item is None:
            break
        yield format_sse_event(item["event"], item["data"], line_ending=line_ending)
