"""Synchronization intents produced by the diff engine and the event translator."""

from dataclasses import dataclass
from enum import Enum


class IntentKind(Enum):
    """What the remote side has to do with a path."""

    PUSH = "push"
    DELETE = "delete"


@dataclass(frozen=True)
class SyncIntent:
    """A single required action on the remote tree."""

    kind: IntentKind
    path: str
    is_directory: bool = False

    @classmethod
    def push(cls, path: str, is_directory: bool = False) -> "SyncIntent":
        return cls(IntentKind.PUSH, path, is_directory)

    @classmethod
    def delete(cls, path: str, is_directory: bool = False) -> "SyncIntent":
        return cls(IntentKind.DELETE, path, is_directory)

    def __str__(self) -> str:
        return f"{self.kind.value} {self.path}"
