"""
Event Translation
=================

Turns raw watchdog notifications into synchronization intents.

Created and modified paths are pushed; a path that is a directory at the time
the event is handled gets its whole subtree registered first, because a copied
in directory may arrive already populated. Deleted paths, and the source side
of a move, are deleted remotely, unless the removal was already covered by an
earlier event: a directory that is no longer registered, or an entry whose
parent directory went first. Events are translated one by one, in order,
without coalescing.
"""

import os
from pathlib import Path

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
)

from mirrorsync.errors import WatchRegistrationError
from mirrorsync.intents import SyncIntent
from mirrorsync.utils.paths import relative_key
from mirrorsync.watch.registry import WatchRegistry


class EventTranslator:
    """Maps filesystem notifications under ``root`` to sync intents."""

    def __init__(self, root: str | Path, registry: WatchRegistry):
        self.root = os.path.abspath(os.fspath(root))
        self.registry = registry

    def translate(self, event: FileSystemEvent) -> list[SyncIntent]:
        """Translate a single event.

        Args:
            event: Raw watchdog event

        Returns:
            list[SyncIntent]: Intents in the order they must be applied
        """
        event_type = event.event_type
        src_path = os.fsdecode(event.src_path)

        if event_type == EVENT_TYPE_MODIFIED and event.is_directory and src_path in self.registry:
            # watchdog reports the parent as modified whenever a child changes
            return []

        if event_type in (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED):
            return self._appeared(src_path)

        if event_type == EVENT_TYPE_DELETED:
            return self._disappeared(src_path, event.is_directory)

        if event_type == EVENT_TYPE_MOVED:
            intents = self._disappeared(src_path, event.is_directory)
            dest_path = os.fsdecode(getattr(event, "dest_path", "") or "")
            if dest_path:
                intents.extend(self._appeared(dest_path))
            return intents

        return []

    def _appeared(self, path: str) -> list[SyncIntent]:
        if os.path.isdir(path):
            key = relative_key(self.root, path, is_directory=True)
            if not key:
                return []
            try:
                self.registry.register_recursive(path)
            except WatchRegistrationError as error:
                logger.error(f"Error while syncing file {key}: {error}")
                return []
            return [SyncIntent.push(key, is_directory=True)]

        key = relative_key(self.root, path)
        if not key:
            return []
        return [SyncIntent.push(key)]

    def _disappeared(self, path: str, is_directory: bool) -> list[SyncIntent]:
        key = relative_key(self.root, path)
        if not key:
            return []
        was_registered = self.registry.unregister_recursive(path)
        if is_directory and not was_registered:
            # already removed together with an earlier event
            return []
        if os.path.dirname(path) not in self.registry:
            # removed along with its parent directory
            return []
        return [SyncIntent.delete(key, is_directory=is_directory)]
