"""
Exception classes for sync sessions.

Every fatal condition of a session is reported as one of these, either
through the ``on_error`` callback or as the exception of the handle's
``done`` future. Cancellation is not an error and has no class here.

Usage:
    from sessionsync.exceptions import TransportStatusError, DecodeError

    try:
        stats = await handle
    except TransportStatusError as e:
        print(e.status_code)       # 500
    except DecodeError as e:
        print(e.event, e.payload)  # "progress", '{"phase": ...'
"""

from typing import Optional

# Longest payload excerpt embedded in a DecodeError message
PAYLOAD_EXCERPT_LIMIT = 200


class SyncError(Exception):
    """
    Base exception class for sync session failures.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code, when the failure came from the server
        error_code: Machine-readable error code for caller handling
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or "SYNC_ERROR"
        super().__init__(message)


class TransportError(SyncError):
    """
    Request could not be sent or the body could not be read.

    The underlying ``httpx.HTTPError`` is chained as ``__cause__``.

    Usage:
        raise TransportError("ConnectError: connection refused") from exc
    """

    def __init__(self, reason: str):
        super().__init__(
            message=f"Sync transport error: {reason}",
            error_code="TRANSPORT_ERROR",
        )


class TransportStatusError(SyncError):
    """
    Server answered the sync request with a non-success status.

    Usage:
        raise TransportStatusError(500)  # "Sync request failed with status 500"
    """

    def __init__(self, status_code: int):
        super().__init__(
            message=f"Sync request failed with status {status_code}",
            status_code=status_code,
            error_code="TRANSPORT_STATUS",
        )


class DecodeError(SyncError):
    """
    A frame's data payload is not valid JSON or has the wrong shape.

    Usage:
        raise DecodeError("progress", '{"phase": 1')
    """

    def __init__(self, event: str, payload: str, reason: Optional[str] = None):
        excerpt = payload
        if len(excerpt) > PAYLOAD_EXCERPT_LIMIT:
            excerpt = excerpt[:PAYLOAD_EXCERPT_LIMIT] + "..."
        message = f"Invalid {event} payload: {excerpt!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message=message, error_code="DECODE_ERROR")
        self.event = event
        self.payload = payload


class PrematureEndError(SyncError):
    """
    Stream ended without ever producing a ``done`` event.

    Usage:
        raise PrematureEndError()
    """

    def __init__(self, message: str = "Sync stream ended without a completion signal"):
        super().__init__(message=message, error_code="PREMATURE_END")


class ConfigurationError(SyncError):
    """
    Configuration value missing or invalid.

    Usage:
        raise ConfigurationError("SESSIONSYNC_CONNECT_TIMEOUT", "not a number")
    """

    def __init__(self, name: str, reason: str):
        super().__init__(
            message=f"Invalid configuration {name}: {reason}",
            error_code="CONFIGURATION_INVALID",
        )
        self.name = name
