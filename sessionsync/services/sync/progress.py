"""
Progress callback contract for sync sessions.

Decouples the stream reader from whatever consumes its notifications
(a UI store, a CLI progress bar, a test).
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from sessionsync.schemas.sync import SyncProgress, SyncStats

ProgressCallback = Callable[[SyncProgress], Union[None, Awaitable[None]]]
DoneCallback = Callable[[SyncStats], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


@dataclass
class SyncCallbacks:
    """
    Optional notification hooks for one sync session.

    Each hook may be a plain function or a coroutine function.

    - on_progress: every ``progress`` event before completion
    - on_done: once, with the final stats
    - on_error: once, with the session's fatal error

    At most one of on_done / on_error fires per session, and neither fires
    after the session is aborted.
    """
    on_progress: Optional[ProgressCallback] = None
    on_done: Optional[DoneCallback] = None
    on_error: Optional[ErrorCallback] = None


async def invoke(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Call a hook, awaiting it if it returned an awaitable."""
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result
