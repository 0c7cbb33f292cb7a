"""
Sync controller.

Starts a server-side sync over HTTP and follows its event stream to
exactly one terminal outcome:

    IDLE -> REQUESTING -> STREAMING -> DONE | ERRORED | CANCELLED

Each ``start()`` creates an independent session that owns its HTTP
response, parser buffers and terminal flag. Sessions share nothing, and
nothing here prevents several from running at once.

Usage:
    controller = SyncController("http://127.0.0.1:8080")
    handle = controller.start(on_progress=print)
    stats = await handle            # SyncStats, or raises SyncError

    handle.abort()                  # cancel; no further callbacks fire
"""

import asyncio
import dataclasses
import logging
import uuid
from typing import Optional

import httpx

from sessionsync.core.config import SyncClientConfig, normalize_base_url
from sessionsync.exceptions import (
    PrematureEndError,
    TransportError,
    TransportStatusError,
)
from sessionsync.schemas.sync import SyncState, SyncStats
from .dispatcher import EventDispatcher
from .progress import (
    DoneCallback,
    ErrorCallback,
    ProgressCallback,
    SyncCallbacks,
    invoke,
)
from .sse_parser import Frame, SSEStreamParser

logger = logging.getLogger(__name__)


def _retrieve_exception(future: asyncio.Future) -> None:
    # The error already went to on_error; an un-awaited future must not log it again
    if not future.cancelled():
        future.exception()


class SyncSession:
    """
    One sync request and its stream.

    Mutated only by its own read task, except for ``abort()`` which may be
    called from anywhere on the event loop, including from inside a
    callback of this session.
    """

    def __init__(
        self,
        config: SyncClientConfig,
        callbacks: SyncCallbacks,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.config = config
        self.callbacks = callbacks
        self.state = SyncState.IDLE
        self.done: asyncio.Future = asyncio.get_running_loop().create_future()
        self._client = client
        self._parser = SSEStreamParser()
        self._dispatcher = EventDispatcher(callbacks.on_progress)
        self._task: Optional[asyncio.Task] = None

        self.done.add_done_callback(self._on_future_done)
        if callbacks.on_error is not None:
            self.done.add_done_callback(_retrieve_exception)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def start(self) -> None:
        """Schedule the read task."""
        if self._task is not None:
            raise RuntimeError(f"Sync session {self.session_id} already started")
        self._task = asyncio.create_task(
            self._run(), name=f"sessionsync-{self.session_id}"
        )
        self._task.add_done_callback(self._on_task_done)

    def abort(self) -> None:
        """Cancel the session. No-op once the session is terminal."""
        if not self._finish(SyncState.CANCELLED):
            return
        logger.info(
            f"Sync session {self.session_id} cancelled",
            extra={"session_id": self.session_id},
        )
        # A task aborting itself unwinds through the terminal check instead
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # =========================================================================
    # Read Task
    # =========================================================================

    async def _run(self) -> None:
        owns_client = self._client is None
        client = self._client or httpx.AsyncClient(timeout=self.config.timeout)
        try:
            await self._stream(client)
        except asyncio.CancelledError:
            if not self.is_terminal:
                # Cancelled from outside, e.g. event loop shutdown
                self._finish(SyncState.CANCELLED)
                raise
        except Exception as e:
            await self._fail(e)
        finally:
            self._parser.reset()
            if owns_client:
                await client.aclose()

    async def _stream(self, client: httpx.AsyncClient) -> None:
        self._transition(SyncState.REQUESTING)
        url = self.config.sync_url
        logger.info(
            f"Sync session {self.session_id} requesting {url}",
            extra={"session_id": self.session_id},
        )

        try:
            async with client.stream(
                "POST", url, headers=self.config.headers(), timeout=self.config.timeout
            ) as response:
                if not response.is_success:
                    # Body is never read for a failed response
                    raise TransportStatusError(response.status_code)

                self._transition(SyncState.STREAMING)
                async for chunk in response.aiter_bytes():
                    if await self._dispatch_all(self._parser.feed(chunk)):
                        return

                if await self._dispatch_all(self._parser.finish()):
                    return
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        raise PrematureEndError()

    async def _dispatch_all(self, frames: list[Frame]) -> bool:
        """Dispatch frames in order; True once the session is terminal."""
        for frame in frames:
            if self.is_terminal:
                return True
            logger.debug(
                f"Sync session {self.session_id} frame event={frame.event!r} "
                f"data_len={len(frame.data)}"
            )
            stats = await self._dispatcher.dispatch(frame)
            if stats is not None:
                await self._complete(stats)
                return True
        return self.is_terminal

    # =========================================================================
    # Terminal Outcomes
    # =========================================================================

    async def _complete(self, stats: SyncStats) -> None:
        if not self._finish(SyncState.DONE, result=stats):
            return
        logger.info(
            f"Sync session {self.session_id} done: "
            f"{stats.synced}/{stats.total_sessions} synced, {stats.skipped} skipped",
            extra={"session_id": self.session_id},
        )
        await self._notify(self.callbacks.on_done, stats)

    async def _fail(self, error: Exception) -> None:
        if not self._finish(SyncState.ERRORED, error=error):
            return
        logger.warning(
            f"Sync session {self.session_id} failed: {error}",
            extra={"session_id": self.session_id, "error": type(error).__name__},
        )
        await self._notify(self.callbacks.on_error, error)

    async def _notify(self, callback, payload) -> None:
        try:
            await invoke(callback, payload)
        except Exception as e:
            # Session is already terminal; there is no channel left to report on
            logger.error(
                f"Sync session {self.session_id} callback raised: {e}",
                exc_info=True,
                extra={"session_id": self.session_id, "error": type(e).__name__},
            )

    def _finish(
        self,
        state: SyncState,
        result: Optional[SyncStats] = None,
        error: Optional[Exception] = None,
    ) -> bool:
        """Enter a terminal state. Returns False if one was already reached."""
        if self.is_terminal:
            return False
        if state is not SyncState.CANCELLED and self.done.cancelled():
            # The future was cancelled directly and abort() is still queued
            self.abort()
            return False
        self.state = state
        self._parser.reset()
        if not self.done.done():
            if state is SyncState.DONE:
                self.done.set_result(result)
            elif state is SyncState.ERRORED:
                self.done.set_exception(error)
            else:
                self.done.cancel()
        return True

    def _transition(self, state: SyncState) -> None:
        if not self.is_terminal:
            self.state = state

    def _on_task_done(self, task: asyncio.Task) -> None:
        # Task cancelled before its first step never reaches _run
        if not self.is_terminal:
            self._finish(SyncState.CANCELLED)

    def _on_future_done(self, future: asyncio.Future) -> None:
        # Cancelling the future directly is the same as abort()
        if future.cancelled():
            self.abort()


class SyncHandle:
    """
    Caller's view of a running sync session.

    The outcome is available both through the callbacks given to
    ``start()`` and through this handle; the two always agree.
    """

    def __init__(self, session: SyncSession):
        self._session = session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def state(self) -> SyncState:
        return self._session.state

    @property
    def is_terminal(self) -> bool:
        return self._session.is_terminal

    @property
    def done(self) -> asyncio.Future:
        """
        Future resolving to SyncStats, failing with a SyncError, or cancelled
        when the session is aborted.
        """
        return self._session.done

    def abort(self) -> None:
        """Cancel the session. Idempotent; a no-op after completion."""
        self._session.abort()

    async def wait(self) -> SyncStats:
        """
        Wait for the outcome.

        Cancelling the waiter does not cancel the session.

        When the session is aborted elsewhere the waiter gets CancelledError
        without itself being cancelled; check ``state`` to tell the two
        apart.

        Raises:
            SyncError: the session failed
            asyncio.CancelledError: the session was aborted
        """
        return await asyncio.shield(self._session.done)

    def __await__(self):
        return self.wait().__await__()


class SyncController:
    """
    Entry point for starting sync sessions against one server.

    Args:
        base_url: Server address (defaults to env SESSIONSYNC_BASE_URL)
        client: Shared httpx.AsyncClient; sessions never close it. When
            omitted each session opens and closes its own client.
        config: Full connection settings (base_url overrides its address)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[SyncClientConfig] = None,
    ):
        if config is None:
            config = SyncClientConfig.from_env(base_url)
        elif base_url:
            config = dataclasses.replace(config, base_url=normalize_base_url(base_url))
        self.config = config
        self._client = client

    def start(
        self,
        callbacks: Optional[SyncCallbacks] = None,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_done: Optional[DoneCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> SyncHandle:
        """
        Start a sync session.

        Hooks may be given as a SyncCallbacks object, as keyword arguments,
        or both (keywords win). Must be called from a running event loop.

        Returns:
            SyncHandle for awaiting or aborting the session
        """
        callbacks = callbacks or SyncCallbacks()
        overrides = {
            name: hook
            for name, hook in (
                ("on_progress", on_progress),
                ("on_done", on_done),
                ("on_error", on_error),
            )
            if hook is not None
        }
        if overrides:
            callbacks = dataclasses.replace(callbacks, **overrides)

        session = SyncSession(self.config, callbacks, client=self._client)
        session.start()
        return SyncHandle(session)


def start_sync(
    on_progress: Optional[ProgressCallback] = None,
    *,
    on_done: Optional[DoneCallback] = None,
    on_error: Optional[ErrorCallback] = None,
    base_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[SyncClientConfig] = None,
) -> SyncHandle:
    """Start a sync session with a one-off controller."""
    controller = SyncController(base_url, client=client, config=config)
    return controller.start(on_progress=on_progress, on_done=on_done, on_error=on_error)


async def run_sync(
    on_progress: Optional[ProgressCallback] = None,
    *,
    base_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[SyncClientConfig] = None,
) -> SyncStats:
    """
    Run a sync to completion.

    Cancelling the awaiting task aborts the session.

    Raises:
        SyncError: the session failed
        asyncio.CancelledError: the awaiting task was cancelled, or the
            session was cancelled from outside (e.g. event loop shutdown)
    """
    handle = start_sync(on_progress, base_url=base_url, client=client, config=config)
    try:
        return await handle
    except asyncio.CancelledError:
        handle.abort()
        raise
