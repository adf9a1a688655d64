"""Local event ring buffer module."""

from .buffer import DEFAULT_CAPACITY, EventRingBuffer, IEventRingBuffer

__all__ = ["DEFAULT_CAPACITY", "EventRingBuffer", "IEventRingBuffer"]
