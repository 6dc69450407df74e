"""
Test Configuration and Fixtures
=============================

This module provides pytest fixtures and test doubles for the mirrorsync tests.
"""

from collections.abc import Callable
from pathlib import Path

import pytest

from mirrorsync.checksums import file_checksum
from mirrorsync.errors import TransportError


class FakeObserver:
    """Stands in for a watchdog observer and records every watch."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.fail_on = set(fail_on)
        self.scheduled: list[str] = []
        self.unscheduled: list[str] = []
        self.alive = False

    def schedule(self, handler, path, *, recursive=False):
        assert recursive is True
        if path in self.fail_on:
            raise OSError(28, "inotify watch limit reached")
        self.scheduled.append(path)
        return ("watch", path)

    def unschedule(self, watch):
        self.unscheduled.append(watch[1])

    def start(self):
        self.alive = True

    def stop(self):
        self.alive = False

    def join(self, timeout=None):
        pass

    def is_alive(self):
        return self.alive


class FakeRemote:
    """In-memory remote tree recording the round trips made against it."""

    def __init__(self, index: dict[str, int] | None = None, fail: tuple[str, ...] = ()):
        self.index = dict(index or {})
        self.fail = set(fail)
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def _check(self, key: str) -> None:
        if key in self.fail:
            raise TransportError(key, "Internal Server Error", 500)

    def fetch_index(self, key: str = "") -> dict[str, int]:
        return dict(self.index)

    def push_file(self, key: str, path) -> str:
        checksum = file_checksum(path)
        self._check(key)
        self.calls.append(("push", key))
        self.index[key] = checksum
        return ""

    def push_directory(self, key: str) -> str:
        self._check(key)
        self.calls.append(("push", key))
        self.index[key.rstrip("/") + "/"] = 0
        return ""

    def delete(self, key: str) -> str:
        self._check(key)
        self.calls.append(("delete", key))
        prefix = key.rstrip("/") + "/"
        for existing in list(self.index):
            if existing == key or existing == prefix or existing.startswith(prefix):
                del self.index[existing]
        return ""

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, str | None]], Path]:
    """
    Build a directory tree from a mapping of relative paths to contents.

    A value of None creates a directory.
    """
    def build(spec: dict[str, str | None], root: Path | None = None) -> Path:
        base = root or tmp_path / "tree"
        base.mkdir(parents=True, exist_ok=True)
        for relative, content in spec.items():
            path = base / relative
            if content is None:
                path.mkdir(parents=True, exist_ok=True)
            else:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content)
        return base.resolve()
    return build


@pytest.fixture
def make_observer() -> Callable[..., FakeObserver]:
    return FakeObserver


@pytest.fixture
def make_remote() -> Callable[..., FakeRemote]:
    return FakeRemote
