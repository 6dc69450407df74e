"""Tests for the sync client orchestration."""


import pytest
from fastapi.testclient import TestClient
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent

from mirrorsync.checksums import compute_checksums
from mirrorsync.client import SyncClient
from mirrorsync.config import ClientConfig
from mirrorsync.errors import TransportError
from mirrorsync.intents import SyncIntent
from mirrorsync.server import ServerApplier, create_app
from mirrorsync.transport import RemoteTree
from mirrorsync.watch.buffer import CoalescingBuffer


@pytest.fixture
def make_client(fake_observer):
    def build(root, remote, buffer=None):
        config = ClientConfig(root=root, target="http://buildhost:8080/")
        return SyncClient(config, remote=remote, observer=fake_observer, buffer=buffer)
    return build


def test_initial_sync_pushes_new_file(make_tree, make_client, fake_remote):
    root = make_tree({"x.txt": "content"})
    client = make_client(root, fake_remote)

    result = client.initial_sync()

    assert result.push == ["x.txt"]
    assert result.delete == []
    assert fake_remote.calls == [("push", "x.txt")]


def test_event_driven_delete_after_initial_sync(make_tree, make_client, fake_remote):
    root = make_tree({"x.txt": "content"})
    client = make_client(root, fake_remote)
    client.initial_sync()
    client.start_watching()
    fake_remote.calls.clear()

    (root / "x.txt").unlink()
    client.process(FileDeletedEvent(str(root / "x.txt")))

    assert fake_remote.calls == [("delete", "x.txt")]


def test_initial_sync_deletes_remote_only_paths(make_tree, make_client, make_remote):
    root = make_tree({"keep.txt": "same"})
    remote = make_remote({"keep.txt": compute_checksums(root)["keep.txt"], "stale/": 0, "stale/f": 3})
    client = make_client(root, remote)

    client.initial_sync()

    assert remote.calls == [("delete", "stale/"), ("delete", "stale/f")]


def test_initial_sync_twice_is_idempotent(make_tree, make_client, fake_remote):
    root = make_tree({"a.txt": "a", "d/b.txt": "b", "d/e": None})
    client = make_client(root, fake_remote)

    client.initial_sync()
    second = client.initial_sync()

    assert second.is_empty


def test_failed_push_is_logged_and_skipped(make_tree, make_client, make_remote):
    root = make_tree({"a.txt": "a", "b.txt": "b", "c.txt": "c"})
    remote = make_remote(fail=("b.txt",))
    client = make_client(root, remote)

    client.initial_sync()

    assert remote.calls == [("push", "a.txt"), ("push", "c.txt")]


def test_apply_reports_failures(make_tree, make_client, make_remote):
    root = make_tree({"a.txt": "a"})
    remote = make_remote(fail=("a.txt",))
    client = make_client(root, remote)

    assert client.apply(SyncIntent.push("a.txt")) is False
    assert client.apply(SyncIntent.push("vanished.txt")) is False
    assert remote.calls == []


def test_directory_creation_registers_and_pushes(make_tree, make_client, fake_remote, fake_observer):
    root = make_tree({})
    client = make_client(root, fake_remote)
    client.start_watching()

    (root / "copied" / "nested").mkdir(parents=True)
    (root / "copied" / "nested" / "f.txt").write_text("x")
    client.process(DirCreatedEvent(str(root / "copied")))

    assert fake_remote.calls == [("push", "copied/")]
    assert str(root / "copied" / "nested") in client.registry
    assert fake_observer.scheduled == [str(root)]


def test_intents_applied_in_event_order(make_tree, make_client, fake_remote):
    root = make_tree({"p1.txt": "1", "p2.txt": "2"})
    client = make_client(root, fake_remote)

    client.process(FileCreatedEvent(str(root / "p1.txt")))
    client.process(FileCreatedEvent(str(root / "p2.txt")))

    assert fake_remote.calls == [("push", "p1.txt"), ("push", "p2.txt")]


def test_every_event_is_applied_by_default(make_tree, make_client, fake_remote):
    root = make_tree({"a.txt": "a"})
    client = make_client(root, fake_remote)

    for _ in range(3):
        client.process(FileModifiedEvent(str(root / "a.txt")))

    assert fake_remote.calls == [("push", "a.txt")] * 3


def test_coalescing_buffer_collapses_bursts(make_tree, make_client, fake_remote):
    root = make_tree({"a.txt": "a"})
    now = [0.0]
    client = make_client(root, fake_remote, buffer=CoalescingBuffer(0.1, clock=lambda: now[0]))

    for _ in range(3):
        client.process(FileModifiedEvent(str(root / "a.txt")))
    assert fake_remote.calls == []

    now[0] = 1.0
    client.flush()

    assert fake_remote.calls == [("push", "a.txt")]


def test_step_processes_queued_events(make_tree, make_client, fake_remote):
    root = make_tree({"a.txt": "a"})
    client = make_client(root, fake_remote)
    client.start_watching()

    client.stream.on_any_event(FileModifiedEvent(str(root / "a.txt")))
    client.step()

    assert fake_remote.calls == [("push", "a.txt")]


def test_step_logs_watch_errors(make_tree, make_client, fake_remote):
    root = make_tree({})
    client = make_client(root, fake_remote)
    client.start_watching()

    client.stream.report_error(OSError("queue overflow"))
    client.step()

    assert fake_remote.calls == []


def test_run_forever_continues_after_failed_initial_sync(make_tree, make_client, make_remote, fake_observer):
    root = make_tree({"a.txt": "a"})

    class UnreachableRemote(type(make_remote())):
        def fetch_index(self, key=""):
            raise TransportError(key, "connection refused")

    remote = UnreachableRemote()
    client = make_client(root, remote)

    steps = []

    def stop_after_first_step():
        steps.append(1)
        raise KeyboardInterrupt

    client.step = stop_after_first_step
    with pytest.raises(KeyboardInterrupt):
        client.run_forever()

    assert steps == [1]
    assert str(root) in fake_observer.scheduled
    assert remote.closed


def test_end_to_end_against_server(make_tree, tmp_path, fake_observer):
    local = make_tree({"main.go": "package main", "pkg/util.go": "package pkg", "pkg/empty": None})
    served = tmp_path / "served"
    served.mkdir()
    (served / "obsolete.txt").write_text("old")

    remote = RemoteTree("http://testserver/")
    remote._client = TestClient(create_app(applier=ServerApplier(served)), base_url="http://testserver/")
    config = ClientConfig(root=local, target="http://testserver/")
    client = SyncClient(config, remote=remote, observer=fake_observer)

    first = client.initial_sync()
    second = client.initial_sync()

    assert first.delete == ["obsolete.txt"]
    assert second.is_empty
    assert compute_checksums(served) == compute_checksums(local)
    client.close()
