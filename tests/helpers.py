"""Test doubles for the sync transport."""

import asyncio
from typing import List, Optional, Union

import httpx

BASE_URL = "http://sync.test"

Chunk = Union[str, bytes]

PROGRESS_SCANNING = (
    '{"phase":"scanning","projects_total":1,"projects_done":0,'
    '"sessions_total":0,"sessions_done":0,"messages_indexed":0}'
)


class ChunkStream(httpx.AsyncByteStream):
    """Response body delivering fixed chunks, one per read."""

    def __init__(
        self,
        chunks: List[Chunk],
        *,
        hold_open: bool = False,
        error: Optional[Exception] = None,
    ):
        self.chunks = [c.encode("utf-8") if isinstance(c, str) else c for c in chunks]
        self.hold_open = hold_open
        self.error = error
        self.reads = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.reads += 1
            yield chunk
        if self.error is not None:
            raise self.error
        if self.hold_open:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class FakeServer:
    """MockTransport handler serving one canned sync response."""

    def __init__(self, stream: Optional[ChunkStream] = None, status_code: int = 200):
        self.stream = stream
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.stream is None:
            return httpx.Response(self.status_code)
        return httpx.Response(
            self.status_code,
            headers={"Content-Type": "text/event-stream"},
            stream=self.stream,
        )


async def settle(rounds: int = 20) -> None:
    """Let pending tasks on the loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
    await asyncio.sleep(0.01)
