"""
Event dispatcher for the sync stream.

Decodes completed frames into domain payloads and notifies the progress
hook. The terminal ``done`` transition belongs to the session, so done
frames are only decoded and handed back.
"""

import logging
from typing import Optional, Union

from pydantic import ValidationError

from sessionsync.exceptions import DecodeError
from sessionsync.schemas.sync import SyncProgress, SyncStats
from .progress import ProgressCallback, invoke
from .sse_parser import Frame

logger = logging.getLogger(__name__)

PROGRESS_EVENT = "progress"
DONE_EVENT = "done"

_EVENT_MODELS = {
    PROGRESS_EVENT: SyncProgress,
    DONE_EVENT: SyncStats,
}


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid")
    return f"{location}: {message}" if location else message


class EventDispatcher:
    """Routes frames to the progress hook, or back to the caller for ``done``."""

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self.on_progress = on_progress

    def decode(self, frame: Frame) -> Union[SyncProgress, SyncStats, None]:
        """
        Decode a frame's payload.

        Returns:
            SyncProgress / SyncStats, or None for any other event name

        Raises:
            DecodeError: payload is not valid JSON or has the wrong shape
        """
        model = _EVENT_MODELS.get(frame.event)
        if model is None:
            logger.debug(f"Dropping unhandled event {frame.event!r}")
            return None
        try:
            return model.model_validate_json(frame.data)
        except ValidationError as e:
            raise DecodeError(frame.event, frame.data, _first_error(e)) from e

    async def dispatch(self, frame: Frame) -> Optional[SyncStats]:
        """
        Handle one frame.

        Progress frames go to ``on_progress``. A done frame is returned
        without notifying anyone.
        """
        payload = self.decode(frame)
        if isinstance(payload, SyncStats):
            return payload
        if isinstance(payload, SyncProgress):
            await invoke(self.on_progress, payload)
        return None
