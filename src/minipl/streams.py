"""
Value Sources and Sinks
=======================

Transport endpoints used between the scanner and the parser.

A **source** yields values one at a time through ``take()`` and returns
``None`` once it is permanently exhausted. A **sink** accepts values one
at a time through ``put()``. Both sides are single-producer /
single-consumer.

Implementations
---------------
- BufferSource / BufferSink: in-memory buffers for sequential runs
- ChannelSource / ChannelSink: the two ends of a bounded queue for
  running the stages on separate threads

Example
-------
>>> sink, source = channel(maxsize=16)
>>> sink.put(1)
>>> sink.close()
>>> source.take(), source.take()
(1, None)
"""

import logging
import queue
import threading
from collections import deque
from typing import Generic, Iterable, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)
T_contra = TypeVar("T_contra", contravariant=True)


# =============================================================================
# Protocols
# =============================================================================

class Source(Protocol[T_co]):
    """Anything that can hand out values until exhausted."""

    def take(self) -> Optional[T_co]:
        """Return the next value, or None once the source is exhausted."""
        ...


class Sink(Protocol[T_contra]):
    """Anything that accepts values one at a time."""

    def put(self, item: T_contra) -> None:
        """Accept one value."""
        ...


class ChannelClosedError(Exception):
    """Raised on put() after the receiving end of a channel was closed."""
    pass


# =============================================================================
# In-Memory Buffers
# =============================================================================

class BufferSource(Generic[T]):
    """Source backed by a deque."""

    def __init__(self, items: Iterable[T] = ()):
        self._items: deque[T] = deque(items)

    def take(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items.popleft()

    def __len__(self) -> int:
        return len(self._items)


class BufferSink(Generic[T]):
    """Sink that appends to a list, exposed as ``items``."""

    def __init__(self):
        self.items: list[T] = []

    def put(self, item: T) -> None:
        self.items.append(item)

    def __len__(self) -> int:
        return len(self.items)


# =============================================================================
# Cross-Thread Channel
# =============================================================================

# Marks end of stream inside the queue
_END_OF_STREAM = object()

# Seconds between checks of the receiver-closed flag while blocked
_POLL_INTERVAL = 0.05


class _ChannelState:
    """Shared state of one channel."""

    def __init__(self, maxsize: int):
        self.queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.receiver_closed = threading.Event()


class ChannelSink(Generic[T]):
    """
    Sending end of a bounded channel.

    put() blocks while the queue is full. Once the receiving end is
    closed, put() raises ChannelClosedError so the producer can stop.
    close() marks the end of the stream; the receiver then sees None.
    """

    def __init__(self, state: _ChannelState):
        self._state = state
        self._closed = False

    def put(self, item: T) -> None:
        if self._closed:
            raise ChannelClosedError("put() on a closed channel sink")
        self._send(item)

    def close(self) -> None:
        """Signal end of stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._send(_END_OF_STREAM)
        except ChannelClosedError:
            # Nobody is listening any more
            pass

    def _send(self, item: object) -> None:
        while True:
            if self._state.receiver_closed.is_set():
                raise ChannelClosedError("receiving end of channel was closed")
            try:
                self._state.queue.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def __enter__(self) -> "ChannelSink[T]":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()


class ChannelSource(Generic[T]):
    """
    Receiving end of a bounded channel.

    take() blocks while the queue is empty and returns None once the
    sender has closed. close() drops the receiving end: pending values
    are discarded and the sender's next put() fails.
    """

    def __init__(self, state: _ChannelState):
        self._state = state
        self._exhausted = False

    def take(self) -> Optional[T]:
        if self._exhausted:
            return None
        item = self._state.queue.get()
        if item is _END_OF_STREAM:
            self._exhausted = True
            return None
        return item

    def close(self) -> None:
        """Drop the receiving end and release a blocked sender."""
        if self._state.receiver_closed.is_set():
            return
        self._state.receiver_closed.set()
        self._exhausted = True
        dropped = 0
        while True:
            try:
                self._state.queue.get_nowait()
                dropped += 1
            except queue.Empty:
                break
        if dropped:
            logger.debug(f"Channel closed by receiver, dropped {dropped} pending item(s)")


def channel(maxsize: int = 0) -> tuple[ChannelSink, ChannelSource]:
    """
    Create a bounded single-producer/single-consumer channel.

    Args:
        maxsize: Queue capacity; 0 means unbounded

    Returns:
        (sink, source) pair sharing one queue
    """
    state = _ChannelState(maxsize)
    return ChannelSink(state), ChannelSource(state)
