"""
Sync Client
===========

Drives the synchronizing side in two phases:

1. Initial sync: checksum the local tree, fetch the remote index, diff them and
   apply every push and delete.
2. Steady state: watch the tree and apply the intents derived from each
   filesystem event, one HTTP round trip at a time, in event order.

A failed push or delete is logged with its path and left alone. The next event
touching the same path, or the next restart, is what brings it back in sync.
"""

from loguru import logger
from watchdog.events import FileSystemEvent
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from mirrorsync.checksums import compute_checksums
from mirrorsync.config import ClientConfig
from mirrorsync.diff import TreeDiff, diff_indices
from mirrorsync.errors import MirrorSyncError, TransportError
from mirrorsync.intents import IntentKind, SyncIntent
from mirrorsync.transport import RemoteTree
from mirrorsync.utils.logging import timeit
from mirrorsync.watch.buffer import EventBuffer, make_buffer
from mirrorsync.watch.events import EventStream, WatchError
from mirrorsync.watch.registry import WatchRegistry
from mirrorsync.watch.translator import EventTranslator


class SyncClient:
    """Keeps ``config.root`` mirrored to ``config.target``."""

    poll_interval = 1.0

    def __init__(
        self,
        config: ClientConfig,
        remote: RemoteTree | None = None,
        observer: BaseObserver | None = None,
        buffer: EventBuffer | None = None,
    ):
        """Initialize the client.

        Args:
            config: Client configuration
            remote: Transport to the receiving server, built from ``config`` if omitted
            observer: watchdog observer, a platform default if omitted
            buffer: Event buffering stage, chosen from ``config.buffer`` if omitted
        """
        self.config = config
        self.root = config.root.resolve()
        if remote is None:
            remote = RemoteTree(config.target, timeout=config.timeout)
        self.remote = remote
        self.observer = observer if observer is not None else Observer()
        self.stream = EventStream()
        self.registry = WatchRegistry(self.observer, self.stream)
        self.translator = EventTranslator(self.root, self.registry)
        self.buffer = buffer if buffer is not None else make_buffer(config.buffer)
        self._observer_lost = False

    def compute_diff(self) -> TreeDiff:
        """Compare the local tree with the remote one without applying anything.

        Raises:
            ChecksumError: If the local tree cannot be read completely
            TransportError: If the remote index cannot be fetched
        """
        local = compute_checksums(self.root)
        remote = self.remote.fetch_index()
        return diff_indices(local, remote)

    @timeit
    def initial_sync(self) -> TreeDiff:
        """Push everything that differs and delete what only exists remotely."""
        diff = self.compute_diff()
        logger.info(
            f"Initial sync: {len(diff.push)} to push, {len(diff.delete)} to delete"
        )
        for intent in diff.intents():
            self.apply(intent)
        return diff

    def apply(self, intent: SyncIntent) -> bool:
        """Apply one intent with a single round trip.

        Returns:
            bool: True on success, False if the failure was logged
        """
        try:
            if intent.kind is IntentKind.DELETE:
                output = self.remote.delete(intent.path)
            elif intent.is_directory:
                output = self.remote.push_directory(intent.path)
            else:
                output = self.remote.push_file(intent.path, self.root / intent.path)
        except (TransportError, OSError) as error:
            logger.error(f"Error while syncing file {intent.path}: {error}")
            return False

        if output.strip():
            logger.info(output.rstrip())
        else:
            logger.info(f"Synced: {intent}")
        return True

    def _dispatch(self, event: FileSystemEvent) -> list[SyncIntent]:
        logger.debug(f"{event.event_type}: {event.src_path}")
        intents = self.translator.translate(event)
        for intent in intents:
            self.apply(intent)
        return intents

    def process(self, event: FileSystemEvent) -> list[SyncIntent]:
        """Feed one raw event through the buffer and apply what comes out."""
        intents = []
        for ready in self.buffer.feed(event):
            intents.extend(self._dispatch(ready))
        return intents

    def flush(self) -> list[SyncIntent]:
        """Apply buffered events whose window has expired."""
        intents = []
        for ready in self.buffer.flush():
            intents.extend(self._dispatch(ready))
        return intents

    def start_watching(self) -> None:
        """Start the observer and watch the whole tree.

        Raises:
            WatchRegistrationError: If the root or one of its directories
                cannot be watched
        """
        if not self.observer.is_alive():
            self.observer.start()
        self.registry.register_recursive(self.root)
        logger.info(f"Watching {self.root} ({len(self.registry)} directories)")

    def step(self) -> None:
        """Wait for the next event or watch error and handle it."""
        timeout = self.buffer.timeout
        item = self.stream.get(timeout=self.poll_interval if timeout is None else timeout)
        if item is None:
            self.flush()
            if not self._observer_lost and not self.observer.is_alive():
                self._observer_lost = True
                self.stream.report_error(RuntimeError("observer thread stopped"))
        elif isinstance(item, WatchError):
            logger.error(f"Error while watching file system: {item.error}")
        else:
            self.process(item)

    def run_forever(self) -> None:
        """Initial sync, then watch until interrupted.

        A failed initial sync is logged and does not prevent watching. Failing
        to watch the root is fatal and propagates.
        """
        try:
            self.initial_sync()
        except MirrorSyncError as error:
            logger.error(f"Initial sync failed: {error}")

        try:
            self.start_watching()
            while True:
                self.step()
        finally:
            self.close()

    def close(self) -> None:
        """Stop watching and release the HTTP connection pool."""
        if self.observer.is_alive():
            self.observer.stop()
            self.observer.join()
        self.remote.close()
