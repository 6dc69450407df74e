"""
Watch Registry
==============

Tracks every directory under the synchronized root that is observed for change
notifications.

The directories share one recursive watchdog watch per registered top-level
path. On Linux that is a single inotify instance holding one watch per
directory, so the tree is bounded by ``fs.inotify.max_user_watches`` rather
than by the much smaller per-user instance limit. watchdog adds watches for
new subdirectories itself and replays the entries it finds in them, which
narrows the window in which a freshly created subtree can lose events; the
registry follows along as the create events for those directories are
translated.
"""

import os
from pathlib import Path
from threading import Lock

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers.api import BaseObserver, ObservedWatch

from mirrorsync.errors import WatchRegistrationError


def _is_within(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


class WatchRegistry:
    """Set of directories currently observed for change notifications."""

    def __init__(self, observer: BaseObserver, handler: FileSystemEventHandler):
        """Initialize the registry.

        Args:
            observer: Observer that owns the watches
            handler: Event handler receiving the notifications of every watch
        """
        self.observer = observer
        self.handler = handler
        self._watches: dict[str, ObservedWatch] = {}
        self._directories: set[str] = set()
        self._lock = Lock()

    @staticmethod
    def _normalize(path: str | Path) -> str:
        return os.path.abspath(os.fspath(path))

    @property
    def paths(self) -> set[str]:
        with self._lock:
            return set(self._directories)

    @property
    def watched_roots(self) -> set[str]:
        """Top-level paths holding a watchdog watch."""
        with self._lock:
            return set(self._watches)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        with self._lock:
            return self._normalize(path) in self._directories

    def __len__(self) -> int:
        with self._lock:
            return len(self._directories)

    def _covered(self, directory: str) -> bool:
        return any(_is_within(directory, watched) for watched in self._watches)

    def register_recursive(self, path: str | Path) -> None:
        """Register ``path`` and every directory below it.

        A path outside every existing watch gets a recursive watch of its own.
        Directories that are already registered are left alone, but their
        children are still visited so that directories created since the
        earlier walk get registered too.

        Raises:
            WatchRegistrationError: If the watch cannot be installed or any
                directory cannot be listed. Nothing is registered in that case.
        """
        directory = self._normalize(path)
        scheduled = None
        with self._lock:
            if not self._covered(directory):
                try:
                    scheduled = self.observer.schedule(self.handler, directory, recursive=True)
                except OSError as error:
                    raise WatchRegistrationError(directory, error) from error
                self._watches[directory] = scheduled
                logger.debug(f"Watching {directory}")

        try:
            found = self._walk(directory)
        except WatchRegistrationError:
            if scheduled is not None:
                self._drop_watch(directory)
            raise

        with self._lock:
            added = found - self._directories
            self._directories |= found
        for added_directory in sorted(added):
            logger.debug(f"Registered {added_directory}")

    def _walk(self, directory: str) -> set[str]:
        found = {directory}
        pending = [directory]
        while pending:
            current = pending.pop()
            try:
                with os.scandir(current) as entries:
                    subdirectories = [
                        entry.path for entry in entries if entry.is_dir(follow_symlinks=False)
                    ]
            except OSError as error:
                raise WatchRegistrationError(current, error) from error
            found.update(subdirectories)
            pending.extend(subdirectories)
        return found

    def _drop_watch(self, watched: str) -> None:
        with self._lock:
            watch = self._watches.pop(watched, None)
        if watch is None:
            return
        try:
            self.observer.unschedule(watch)
        except (KeyError, OSError) as error:
            logger.debug(f"Watch on {watched} already gone: {error}")
        else:
            logger.debug(f"Stopped watching {watched}")

    def unregister_recursive(self, path: str | Path) -> bool:
        """Forget ``path`` and every registered directory below it.

        Watches installed on one of those paths are removed as well.

        Returns:
            bool: Whether ``path`` itself was registered
        """
        directory = self._normalize(path)
        with self._lock:
            was_registered = directory in self._directories
            self._directories = {
                known for known in self._directories if not _is_within(known, directory)
            }
            doomed = [watched for watched in self._watches if _is_within(watched, directory)]

        for watched in doomed:
            self._drop_watch(watched)
        return was_registered
