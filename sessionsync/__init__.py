"""
sessionsync - client for streamed session sync.

Usage:
    from sessionsync import SyncController

    handle = SyncController("http://127.0.0.1:8080").start(on_progress=print)
    stats = await handle
"""

from sessionsync.exceptions import (
    ConfigurationError,
    DecodeError,
    PrematureEndError,
    SyncError,
    TransportError,
    TransportStatusError,
)
from sessionsync.schemas.sync import SyncProgress, SyncState, SyncStats
from sessionsync.services.sync import (
    SyncCallbacks,
    SyncController,
    SyncHandle,
    run_sync,
    start_sync,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "PrematureEndError",
    "SyncError",
    "TransportError",
    "TransportStatusError",
    "SyncProgress",
    "SyncState",
    "SyncStats",
    "SyncCallbacks",
    "SyncController",
    "SyncHandle",
    "run_sync",
    "start_sync",
]
