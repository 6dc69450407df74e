"""
Event Stream
============

watchdog delivers notifications on its observer thread. ``EventStream`` is the
handler of the recursive watch on the root: it only enqueues, so the sync
loop can consume filesystem events and watch errors from one ordered queue on
its own thread.
"""

import queue

from watchdog.events import FileSystemEvent, FileSystemEventHandler


class WatchError:
    """A failure reported by the watch subsystem rather than a filesystem change."""

    def __init__(self, error: BaseException):
        self.error = error

    def __repr__(self) -> str:
        return f"WatchError({self.error!r})"


class EventStream(FileSystemEventHandler):
    """Merges filesystem events and watch errors into one queue."""

    def __init__(self):
        super().__init__()
        self._queue: queue.Queue[FileSystemEvent | WatchError] = queue.Queue()

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._queue.put(event)

    def report_error(self, error: BaseException) -> None:
        """Enqueue a watch-subsystem error."""
        self._queue.put(WatchError(error))

    def get(self, timeout: float | None = None) -> FileSystemEvent | WatchError | None:
        """Next item in arrival order, or None if ``timeout`` expires first."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def empty(self) -> bool:
        return self._queue.empty()
