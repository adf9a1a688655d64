"""EventRingBuffer implementation."""

from collections import deque
from threading import Lock
from typing import Protocol

from ..models import RingBufferEntry

DEFAULT_CAPACITY = 100


class IEventRingBuffer(Protocol):
    """Fixed-capacity log of recently emitted events."""

    def append(self, entry: RingBufferEntry) -> None:
        """Append an entry, evicting the oldest one when full."""
        ...

    def recent(self, limit: int | None = None) -> list[RingBufferEntry]:
        """Most recent entries first."""
        ...

    def clear(self) -> None:
        """Drop all entries."""
        ...


class EventRingBuffer:
    """In-memory FIFO ring buffer. Diagnostic only; not persisted."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._entries: deque[RingBufferEntry] = deque(maxlen=capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, entry: RingBufferEntry) -> None:
        """Append an entry; the deque drops the oldest one past capacity."""
        with self._lock:
            self._entries.append(entry)

    def recent(self, limit: int | None = None) -> list[RingBufferEntry]:
        """Return up to ``limit`` entries, newest first. ``limit`` is clamped to [0, capacity]."""
        if limit is None:
            limit = self._capacity
        limit = max(0, min(limit, self._capacity))

        with self._lock:
            snapshot = list(self._entries)

        if limit == 0:
            return []
        return list(reversed(snapshot[-limit:]))

    def clear(self) -> None:
        """Drop all entries."""
        with self._lock:
            self._entries.clear()
