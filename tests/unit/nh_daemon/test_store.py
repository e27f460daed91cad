"""Tests for the shared notification store."""

from __future__ import annotations

import threading

import pytest

from nh_common.errors import StorePoisonedError
from nh_daemon.models import Notification, Urgency
from nh_daemon.store import NotificationStore, ReadWriteLock

pytestmark = pytest.mark.unit_daemon


def _note(notification_id: int, application: str = "", **kwargs) -> Notification:
    return Notification(id=notification_id, application=application, **kwargs)


class ExplodingNotification(Notification):
    def copy(self) -> Notification:
        raise RuntimeError("copy failed")


def test_add_then_count_and_items() -> None:
    store = NotificationStore()
    store.add(_note(1, "foo", summary="a"))
    store.add(_note(2, "bar", summary="b"))

    assert store.count() == 2
    assert [item.id for item in store.items()] == [1, 2]


def test_items_preserve_insertion_order_and_duplicates() -> None:
    store = NotificationStore()
    for notification_id in (5, 3, 5, 1):
        store.add(_note(notification_id))

    assert [item.id for item in store.items()] == [5, 3, 5, 1]
    assert store.count() == len(store.items())


def test_items_are_snapshots() -> None:
    store = NotificationStore()
    original = _note(1, "foo")
    store.add(original)

    original.summary = "changed after add"
    snapshot = store.items()
    snapshot[0].summary = "changed in snapshot"
    snapshot.append(_note(9))

    assert store.items()[0].summary == ""
    assert store.count() == 1


def test_delete_removes_every_match_and_ignores_absent() -> None:
    store = NotificationStore()
    for notification_id in (1, 2, 1):
        store.add(_note(notification_id))

    store.delete(1)
    store.delete(99)

    assert [item.id for item in store.items()] == [2]


def test_delete_from_app_keeps_others_in_order() -> None:
    store = NotificationStore()
    store.add(_note(1, "foo"))
    store.add(_note(2, "bar"))
    store.add(_note(3, "foo"))
    store.add(_note(4, "baz"))

    store.delete_from_app("foo")

    assert [(item.id, item.application) for item in store.items()] == [(2, "bar"), (4, "baz")]


def test_delete_from_app_matches_exact_name() -> None:
    store = NotificationStore()
    store.add(_note(1, "Foo"))
    store.add(_note(2, "foo "))

    store.delete_from_app("foo")

    assert store.count() == 2


def test_delete_all() -> None:
    store = NotificationStore()
    store.add(_note(1))
    store.add(_note(2))

    store.delete_all()

    assert store.count() == 0
    assert store.items() == []


def test_set_urgency_changes_only_urgency_of_first_match() -> None:
    store = NotificationStore()
    store.add(_note(7, "mail", summary="s", urgency=Urgency.CRITICAL, timestamp=10))
    store.add(_note(7, "mail", summary="dup", urgency=Urgency.CRITICAL))

    store.set_urgency(7, Urgency.NORMAL)

    first, second = store.items()
    assert first == _note(7, "mail", summary="s", urgency=Urgency.NORMAL, timestamp=10)
    assert second.urgency is Urgency.CRITICAL


def test_set_urgency_absent_id_is_noop() -> None:
    store = NotificationStore()
    store.add(_note(1, urgency=Urgency.LOW))

    store.set_urgency(2, Urgency.CRITICAL)

    assert store.items()[0].urgency is Urgency.LOW


def test_get_returns_copy_or_none() -> None:
    store = NotificationStore()
    store.add(_note(4, "app", summary="hello"))

    found = store.get(4)
    assert found is not None and found.summary == "hello"
    found.summary = "mutated"
    assert store.get(4).summary == "hello"
    assert store.get(5) is None


def test_concurrent_adds_are_all_kept() -> None:
    store = NotificationStore()
    workers, per_worker = 8, 200

    def add_many(offset: int) -> None:
        for index in range(per_worker):
            store.add(_note(offset * per_worker + index, f"app-{offset}"))

    threads = [threading.Thread(target=add_many, args=(offset,)) for offset in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    items = store.items()
    assert store.count() == workers * per_worker
    assert sorted(item.id for item in items) == list(range(workers * per_worker))
    for offset in range(workers):
        ids = [item.id for item in items if item.application == f"app-{offset}"]
        assert ids == sorted(ids)


def test_concurrent_readers_and_writers() -> None:
    store = NotificationStore()
    errors: list[BaseException] = []
    stop = threading.Event()

    def reader() -> None:
        try:
            while not stop.is_set():
                assert store.count() >= 0
                store.items()
        except BaseException as exc:
            errors.append(exc)

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for notification_id in range(300):
        store.add(_note(notification_id, "a" if notification_id % 2 else "b"))
        if notification_id % 50 == 0:
            store.delete_from_app("b")
    stop.set()
    for thread in readers:
        thread.join()

    assert errors == []
    assert not store.poisoned


def test_failed_write_poisons_store() -> None:
    store = NotificationStore()
    store.add(_note(1))

    with pytest.raises(RuntimeError):
        store.add(ExplodingNotification(id=2))

    assert store.poisoned
    with pytest.raises(StorePoisonedError):
        store.count()
    with pytest.raises(StorePoisonedError):
        store.items()
    with pytest.raises(StorePoisonedError):
        store.delete(1)


def test_rwlock_allows_parallel_readers() -> None:
    lock = ReadWriteLock()
    inside = threading.Barrier(2, timeout=2)

    def read() -> None:
        with lock.read():
            inside.wait()

    threads = [threading.Thread(target=read) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=3)

    assert not any(thread.is_alive() for thread in threads)
    assert not inside.broken


def test_rwlock_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    writer_in = threading.Event()
    release_writer = threading.Event()
    reader_done = threading.Event()

    def write() -> None:
        with lock.write():
            writer_in.set()
            release_writer.wait(2)

    def read() -> None:
        with lock.read():
            reader_done.set()

    writer = threading.Thread(target=write)
    writer.start()
    assert writer_in.wait(2)
    reader = threading.Thread(target=read)
    reader.start()

    assert not reader_done.wait(0.1)
    release_writer.set()
    writer.join(2)
    reader.join(2)
    assert reader_done.is_set()
