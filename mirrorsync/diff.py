"""
Tree Diff
=========

Compares a local checksum index with a remote one.

A path is pushed when the remote side lacks it or holds a different checksum,
and deleted when only the remote side has it. Checksum equality is the only
notion of "unchanged": sizes and timestamps are never consulted.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from mirrorsync.intents import SyncIntent
from mirrorsync.utils.paths import is_directory_key


@dataclass
class TreeDiff:
    """Result of comparing two checksum indexes."""

    push: list[str] = field(default_factory=list)
    delete: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.push and not self.delete

    def intents(self) -> list[SyncIntent]:
        """Pushes first, in local walk order, then deletes."""
        intents = [SyncIntent.push(path, is_directory_key(path)) for path in self.push]
        intents.extend(SyncIntent.delete(path, is_directory_key(path)) for path in self.delete)
        return intents


def diff_indices(local: Mapping[str, int], remote: Mapping[str, int]) -> TreeDiff:
    """Classify paths into the push-set and the delete-set.

    Args:
        local: Index of the local tree
        remote: Index of the remote tree, left unmodified

    Returns:
        TreeDiff: Paths to push and paths to delete
    """
    result = TreeDiff()
    remaining = dict(remote)
    for path, checksum in local.items():
        if path not in remaining or remaining[path] != checksum:
            result.push.append(path)
        remaining.pop(path, None)
    result.delete = sorted(remaining)
    return result
