"""Lightweight asyncio event bus for intra-process pub/sub.

The sync loop hands every :class:`~supbridge.types.SyncEvent` to a plain
synchronous callable (an ``EventSink``). ``EventBus.emit`` is one such
callable: it schedules every subscribed coroutine and returns immediately.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections import defaultdict
from collections.abc import Callable, Coroutine
from typing import Any, TypeAlias

from supbridge.logger import logger
from supbridge.types import SyncEvent

EventSink: TypeAlias = Callable[[SyncEvent], None]
Listener: TypeAlias = Callable[[Any], Coroutine[Any, Any, None]]


class EventBus:
    """Fire-and-forget async event dispatcher."""

    def __init__(self) -> None:
        self._listeners: defaultdict[type, list[Listener]] = defaultdict(list)
        self._pending: set[asyncio.Future[None]] = set()

    def subscribe(self, event_type: type, listener: Listener) -> Callable[[], None]:
        """Subscribe to an event type. Returns an unsubscribe function."""
        self._listeners[event_type].append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners[event_type].remove(listener)

        return _unsubscribe

    def emit(self, event: Any) -> None:
        """Emit an event to all subscribers. Non-blocking, fire-and-forget."""
        for listener in list(self._listeners[type(event)]):
            fut = asyncio.ensure_future(_safe_call(listener, event))
            # Hold a reference until done so the task isn't garbage-collected
            self._pending.add(fut)
            fut.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every listener scheduled so far to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))


async def _safe_call(listener: Listener, event: Any) -> None:
    try:
        await listener(event)
    except Exception as exc:
        logger.warning("EventBus listener error", err=str(exc))
