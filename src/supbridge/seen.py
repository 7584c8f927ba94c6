"""Dedup records for the sync loop.

A loop remembers every message id it has already examined so a message that
stays visible across polls is surfaced once. The default keeps ids for the
lifetime of the loop; long-running deployments can cap memory with
``sup_chat.seen_capacity``, which evicts the oldest ids first. An evicted id
that is still visible in the snapshot will be treated as new again, so the
capacity must stay well above the number of messages one snapshot returns.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Protocol, runtime_checkable


@runtime_checkable
class SeenSet(Protocol):
    def __contains__(self, message_id: object) -> bool: ...

    def add(self, message_id: str) -> bool:
        """Record ``message_id``. Returns False if it was already present."""
        ...

    def __len__(self) -> int: ...

    def clear(self) -> None: ...


class UnboundedSeenSet:
    """Grow-only set of ids."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def add(self, message_id: str) -> bool:
        if message_id in self._ids:
            return False
        self._ids.add(message_id)
        return True

    def __len__(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()


class BoundedSeenSet:
    """Insertion-ordered id set that drops the oldest id once full."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be a positive integer")
        self._capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    def add(self, message_id: str) -> bool:
        if message_id in self._ids:
            return False
        if len(self._ids) >= self._capacity:
            self._ids.popitem(last=False)
        self._ids[message_id] = None
        return True

    def __len__(self) -> int:
        return len(self._ids)

    def clear(self) -> None:
        self._ids.clear()


def make_seen_set(capacity: int | None = None) -> SeenSet:
    if capacity is None:
        return UnboundedSeenSet()
    return BoundedSeenSet(capacity)
