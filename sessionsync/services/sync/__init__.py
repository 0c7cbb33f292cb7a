"""
Sync stream client module.

Provides clean separation of concerns for following a server-side sync:
- SSEStreamParser: chunk -> line -> frame reassembly
- EventDispatcher: frame decoding into progress / done payloads
- SyncController: request, read loop, terminal outcome and cancellation
- SSEProgressReporter: producer side of the same wire format
"""

from .controller import SyncController, SyncHandle, SyncSession, run_sync, start_sync
from .dispatcher import EventDispatcher
from .progress import SyncCallbacks
from .sse_parser import (
    ClassifiedLine,
    Frame,
    FrameAssembler,
    LineKind,
    LineReassembler,
    SSEStreamParser,
    classify_line,
    iter_frames,
)
from .sse_reporter import SSEProgressReporter, format_sse_event, iter_sse

__all__ = [
    "SyncController",
    "SyncHandle",
    "SyncSession",
    "run_sync",
    "start_sync",
    "EventDispatcher",
    "SyncCallbacks",
    "ClassifiedLine",
    "Frame",
    "FrameAssembler",
    "LineKind",
    "LineReassembler",
    "SSEStreamParser",
    "classify_line",
    "iter_frames",
    "SSEProgressReporter",
    "format_sse_event",
    "iter_sse",
]
