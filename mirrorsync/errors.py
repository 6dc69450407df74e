"""
Error Types
===========

Exception hierarchy shared by the synchronizing client and the receiving server.
"""


class MirrorSyncError(Exception):
    """Base exception for all mirrorsync errors."""


class ChecksumError(MirrorSyncError):
    """Raised when a tree walk cannot read part of the tree.

    A partial index would lead to wrong delete decisions, so the walk is
    abandoned as a whole.
    """

    def __init__(self, path: str, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot checksum {path}: {cause}")


class WatchRegistrationError(MirrorSyncError):
    """Raised when a directory watch cannot be installed."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot watch {path}: {cause}")


class TransportError(MirrorSyncError):
    """Raised when a request to the remote side fails or is rejected."""

    def __init__(self, path: str, detail: str, status_code: int | None = None):
        self.path = path
        self.detail = detail
        self.status_code = status_code
        if status_code is None:
            super().__init__(detail)
        else:
            super().__init__(f"{status_code} {detail}")


class ApplyError(MirrorSyncError):
    """Raised when the receiving side cannot apply an operation."""


class PathNotFound(ApplyError):
    """Raised when an operation targets a path that does not exist."""


class InvalidPath(ApplyError):
    """Raised when a request path escapes the served root."""


class CommandError(ApplyError):
    """Raised when the post-sync command fails."""

    def __init__(self, command: str, detail: str, output: str = ""):
        self.command = command
        self.output = output
        super().__init__(f"{command}: {detail}")
