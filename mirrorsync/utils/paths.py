"""Helpers for turning filesystem paths into index keys and back."""

import os
from pathlib import Path

from mirrorsync.errors import InvalidPath


def normalize_key(path: str) -> str:
    """Normalize a relative path into the key form used by checksum indexes.

    Keys use forward slashes and never start with ``./`` or ``/``. A trailing
    slash is preserved because it marks a directory entry.

    Args:
        path: Relative path, with either separator

    Returns:
        str: Normalized key
    """
    key = path.replace(os.sep, "/") if os.sep != "/" else path
    while key.startswith("./"):
        key = key[2:]
    key = key.lstrip("/")
    if key == ".":
        return ""
    return key


def relative_key(root: str | Path, path: str | Path, is_directory: bool = False) -> str:
    """Key of ``path`` relative to ``root``.

    Returns an empty string for the root itself and for paths outside it.
    """
    relative = os.path.relpath(os.fspath(path), os.fspath(root))
    if relative == "." or relative == ".." or relative.startswith(".." + os.sep):
        return ""
    key = normalize_key(relative)
    if is_directory and key:
        key += "/"
    return key


def is_directory_key(key: str) -> bool:
    """Whether an index key names a directory entry."""
    return key.endswith("/")


def resolve_under_root(root: str | Path, key: str) -> Path:
    """Join a request path onto ``root``, refusing paths that escape it.

    The check is lexical: symlinks below the root are not followed, so a
    link is addressed as the link itself.

    Raises:
        InvalidPath: If the path lies outside ``root``
    """
    base = Path(root).resolve()
    relative = normalize_key(key).rstrip("/")
    target = Path(os.path.normpath(base / relative)) if relative else base
    if target != base and base not in target.parents:
        raise InvalidPath(f"Path escapes root: {key}")
    return target
