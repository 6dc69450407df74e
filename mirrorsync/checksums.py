"""
Checksum Index
==============

Builds the path to checksum mapping that describes a directory tree.

Directories map to the sentinel ``0`` and carry a trailing slash; files map to
the xxHash64 of their full contents. The walk fails as a whole on the first
unreadable entry.
"""

import os
import stat
from pathlib import Path

import xxhash
from loguru import logger

from mirrorsync.errors import ChecksumError
from mirrorsync.utils.paths import relative_key

DIRECTORY_CHECKSUM = 0
CHUNK_SIZE = 1024 * 1024

ChecksumIndex = dict[str, int]


def file_checksum(path: str | Path) -> int:
    """Compute the 64-bit checksum of a file's contents.

    Args:
        path: File to read

    Returns:
        int: Unsigned 64-bit xxHash of the contents

    Raises:
        OSError: If the file cannot be read
    """
    digest = xxhash.xxh64()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.intdigest()


def _walk(root: str, directory: str, index: ChecksumIndex) -> None:
    try:
        entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError as error:
        raise ChecksumError(directory, error) from error

    for entry in entries:
        try:
            mode = entry.stat().st_mode
        except FileNotFoundError as error:
            if entry.is_symlink():
                logger.debug(f"Skipping dangling link: {entry.path}")
                continue
            raise ChecksumError(entry.path, error) from error
        except OSError as error:
            raise ChecksumError(entry.path, error) from error

        if stat.S_ISDIR(mode):
            index[relative_key(root, entry.path, is_directory=True)] = DIRECTORY_CHECKSUM
            _walk(root, entry.path, index)
        elif stat.S_ISREG(mode):
            try:
                index[relative_key(root, entry.path)] = file_checksum(entry.path)
            except OSError as error:
                raise ChecksumError(entry.path, error) from error
        else:
            logger.debug(f"Skipping special file: {entry.path}")


def compute_checksums(root: str | Path = ".") -> ChecksumIndex:
    """Walk ``root`` depth-first and return its checksum index.

    The root itself is never part of the index.

    Args:
        root: Directory to index

    Returns:
        ChecksumIndex: Mapping of normalized relative keys to checksums

    Raises:
        ChecksumError: If any entry of the tree cannot be read
    """
    root = os.fspath(root) or "."
    if not os.path.isdir(root):
        try:
            os.stat(root)
        except OSError as error:
            raise ChecksumError(root, error) from error
        raise ChecksumError(root, NotADirectoryError(f"Not a directory: {root}"))

    index: ChecksumIndex = {}
    _walk(root, root, index)
    return index
