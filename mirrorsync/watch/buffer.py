"""
Event Buffering
===============

Pluggable stage between the raw notification stream and the translator.

The default stage passes every event straight through. ``CoalescingBuffer``
holds events until the stream has been quiet for a short window and keeps only
the latest event per path, which collapses the burst of writes an editor
performs on save. It is only used when a buffer window is configured.
"""

import time
from collections import OrderedDict

from watchdog.events import FileSystemEvent


class EventBuffer:
    """Base class for buffering stages."""

    def feed(self, event: FileSystemEvent, now: float | None = None) -> list[FileSystemEvent]:
        """Accept an event and return the events that are ready to translate."""
        raise NotImplementedError

    def flush(self, now: float | None = None) -> list[FileSystemEvent]:
        """Return held events that are ready to translate."""
        return []

    @property
    def timeout(self) -> float | None:
        """Seconds until ``flush`` has something to release, None when idle."""
        return None


class PassthroughBuffer(EventBuffer):
    """Identity stage: every event is released as soon as it arrives."""

    def feed(self, event: FileSystemEvent, now: float | None = None) -> list[FileSystemEvent]:
        return [event]


class CoalescingBuffer(EventBuffer):
    """Releases held events once no new event arrived for ``window`` seconds.

    Only the latest event per source path survives. Released events keep the
    order in which their paths were first seen.
    """

    def __init__(self, window: float, clock=time.monotonic):
        if window <= 0:
            raise ValueError("window must be positive")
        self.window = window
        self.clock = clock
        self._pending: OrderedDict[str, FileSystemEvent] = OrderedDict()
        self._last_seen: float | None = None

    def feed(self, event: FileSystemEvent, now: float | None = None) -> list[FileSystemEvent]:
        now = self.clock() if now is None else now
        # Assigning an existing key keeps its position
        self._pending[str(event.src_path)] = event
        self._last_seen = now
        return []

    def flush(self, now: float | None = None) -> list[FileSystemEvent]:
        if self._last_seen is None:
            return []
        now = self.clock() if now is None else now
        if now - self._last_seen < self.window:
            return []
        released = list(self._pending.values())
        self._pending.clear()
        self._last_seen = None
        return released

    @property
    def timeout(self) -> float | None:
        if self._last_seen is None:
            return None
        return max(0.0, self._last_seen + self.window - self.clock())

    def __len__(self) -> int:
        return len(self._pending)


def make_buffer(window: float) -> EventBuffer:
    """Passthrough for a zero window, coalescing otherwise."""
    if window <= 0:
        return PassthroughBuffer()
    return CoalescingBuffer(window)
