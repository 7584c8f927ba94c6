"""Sync loop: turn periodic chat-panel snapshots into an at-most-once event stream.

Lifecycle::

    STOPPED → STARTING → RUNNING → STOPPING → STOPPED

``start()`` loads the auth session once, starts a fresh SeenSet, drains the
current backlog with one immediate cycle, then arms the recurring tick. Each
cycle fetches a snapshot and walks it in chat-then-message order. Every id
not yet in the SeenSet is recorded; those in a direct chat or mentioning
``self_identity`` are handed to the sink.

A failed fetch (HTTP error, transport error, broken envelope) ends that cycle
with zero events and the SeenSet untouched; the next tick proceeds normally.
Only a credential failure during ``start()`` is fatal.

Cycles never overlap: the tick task waits ``poll_interval`` *after* each cycle
finishes, and ``run_cycle`` is additionally guarded by a lock so a manual call
cannot race the tick. ``stop()`` lets an in-flight cycle finish.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

from supbridge.client import SupClient
from supbridge.config import SupChatConfig
from supbridge.credentials import load_auth_session
from supbridge.event_bus import EventSink
from supbridge.logger import connection_context, logger
from supbridge.seen import SeenSet, make_seen_set
from supbridge.snapshot import fetch_snapshot
from supbridge.types import (
    Chat,
    ChatSnapshot,
    EndpointConfig,
    LoopState,
    Message,
    Session,
    SyncEvent,
)

CredentialLoader: TypeAlias = Callable[[str | Path], Session]


def is_relevant(chat: Chat, message: Message, self_identity: str | None) -> bool:
    """Direct messages always qualify; group messages only when they mention us."""
    if chat.is_direct:
        return True
    if not self_identity or not message.mentions:
        return False
    return self_identity in message.mentions


def to_event(chat: Chat, message: Message) -> SyncEvent:
    return SyncEvent(
        chat_id=chat.id,
        message_id=message.id,
        sender_id=message.sender_id,
        text=message.content,
        is_dm=chat.is_direct,
        mentions=message.mentions,
    )


class SyncLoop:
    """Polls one Sup account and emits a :class:`SyncEvent` per new relevant message."""

    def __init__(
        self,
        config: SupChatConfig,
        sink: EventSink,
        *,
        self_identity: str | None = None,
        connection_name: str = "default",
        credential_loader: CredentialLoader = load_auth_session,
        seen: SeenSet | None = None,
        client_factory: Callable[[EndpointConfig, Session], SupClient] = SupClient,
    ) -> None:
        self._config = config
        self._sink = sink
        self._self_identity = self_identity
        self._connection_name = connection_name
        self._credential_loader = credential_loader
        self._client_factory = client_factory
        self._seen: SeenSet = seen if seen is not None else make_seen_set(config.seen_capacity)

        self._state = LoopState.STOPPED
        self._session: Session | None = None
        self._client: SupClient | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._cycle_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def seen(self) -> SeenSet:
        return self._seen

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def poll_interval(self) -> float:
        """Seconds between the end of one cycle and the start of the next."""
        return self._config.poll_interval_seconds

    def is_running(self) -> bool:
        return (
            self._state is LoopState.RUNNING
            and self._tick_task is not None
            and not self._tick_task.done()
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load credentials, drain the backlog once, then start ticking.

        Raises:
            CredentialLoadFailure: the auth session file is missing or empty.
                The loop stays STOPPED.
        """
        with connection_context(self._connection_name):
            await self._start()

    async def _start(self) -> None:
        if self._state is not LoopState.STOPPED:
            logger.debug("Sync loop already started, ignoring start", state=self._state.value)
            return

        self._state = LoopState.STARTING
        try:
            self._session = self._credential_loader(self._config.auth_session_path)
        except Exception:
            self._state = LoopState.STOPPED
            raise

        self._seen.clear()
        endpoint = EndpointConfig.from_config(self._config)
        self._client = self._client_factory(endpoint, self._session)
        self._stop_event.clear()

        try:
            await self.run_cycle()
        except BaseException:
            # e.g. cancelled mid-cycle; never leave a half-started loop behind
            await self._close_client()
            self._session = None
            self._state = LoopState.STOPPED
            raise

        if self._state is not LoopState.STARTING:
            return  # stop() was called during the initial cycle

        self._tick_task = asyncio.create_task(
            self._tick_forever(), name=f"sup-chat-poll-{self._connection_name}"
        )
        self._state = LoopState.RUNNING
        logger.info("Sync loop started", poll_interval_ms=self._config.poll_interval)

    async def stop(self) -> None:
        """Stop ticking. Safe to call any number of times."""
        if self._state in (LoopState.STOPPED, LoopState.STOPPING):
            return

        with connection_context(self._connection_name):
            self._state = LoopState.STOPPING
            self._stop_event.set()
            task, self._tick_task = self._tick_task, None
            if task is not None and not task.done():
                # The tick task exits at its next wait; an in-flight cycle finishes first.
                with contextlib.suppress(asyncio.CancelledError):
                    await task
            async with self._cycle_lock:
                await self._close_client()
            self._session = None
            self._state = LoopState.STOPPED
            logger.info("Sync loop stopped")

    async def _close_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()

    async def _tick_forever(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
                return  # stop requested
            except TimeoutError:
                pass
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Unexpected error in poll cycle")

    # ------------------------------------------------------------------
    # One fetch-filter-emit cycle
    # ------------------------------------------------------------------

    async def _fetch(self) -> ChatSnapshot | None:
        """Fetch and decode a snapshot. None means the fetch failed."""
        if self._client is None:
            logger.warning("Poll skipped, no client")
            return None
        try:
            return await fetch_snapshot(self._client)
        except Exception as exc:
            logger.error("Poll error", err=str(exc))
            return None

    async def run_cycle(self) -> int:
        """Run one poll cycle. Returns the number of events emitted."""
        with connection_context(self._connection_name):
            async with self._cycle_lock:
                snapshot = await self._fetch()
                if snapshot is None:
                    return 0
                return self._process(snapshot)

    def _process(self, snapshot: ChatSnapshot) -> int:
        emitted = 0
        ignore_own = self._config.ignore_own_messages and bool(self._self_identity)
        for chat, message in snapshot.messages():
            if not self._seen.add(message.id):
                continue
            if ignore_own and message.sender_id == self._self_identity:
                continue
            if not is_relevant(chat, message, self._self_identity):
                continue
            try:
                self._sink(to_event(chat, message))
            except Exception:
                logger.exception("Event sink raised", chat_id=chat.id, message_id=message.id)
                continue
            emitted += 1
        if emitted:
            logger.debug("Emitted new messages", count=emitted, seen=len(self._seen))
        return emitted
