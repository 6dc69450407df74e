"""
mirrorsync - mirror a local directory tree to a remote build host over HTTP.
"""

__version__ = "0.1.0"

from mirrorsync.checksums import compute_checksums, file_checksum
from mirrorsync.config import ClientConfig, ServerConfig
from mirrorsync.diff import TreeDiff, diff_indices
from mirrorsync.errors import MirrorSyncError
from mirrorsync.intents import IntentKind, SyncIntent

__all__ = [
    "ClientConfig",
    "IntentKind",
    "MirrorSyncError",
    "ServerConfig",
    "SyncIntent",
    "TreeDiff",
    "compute_checksums",
    "diff_indices",
    "file_checksum",
]
