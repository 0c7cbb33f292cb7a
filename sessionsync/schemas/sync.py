"""
Pydantic schemas for the sync event stream.

Field names are snake_case to match the server's JSON payloads. Validation
is strict: a string or float where an int belongs is rejected, not coerced.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class SyncProgress(BaseModel):
    """Payload of a ``progress`` event."""
    model_config = ConfigDict(strict=True)

    phase: str
    projects_total: int
    projects_done: int
    sessions_total: int
    sessions_done: int
    messages_indexed: int


class SyncStats(BaseModel):
    """Payload of the terminal ``done`` event."""
    model_config = ConfigDict(strict=True)

    total_sessions: int
    synced: int
    skipped: int


class SyncState(str, Enum):
    """Lifecycle states of one sync session."""
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SyncState.DONE, SyncState.ERRORED, SyncState.CANCELLED)
