"""Thread-safe in-memory notification store."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from nh_common.errors import StorePoisonedError
from nh_daemon.models.notification import Notification, Urgency

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer.

    Waiting writers block new readers, so a steady stream of queries cannot
    starve the dispatcher.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class NotificationStore:
    """Ordered collection of active notifications shared by every hub thread.

    One instance is created at startup and handed to the dispatcher and the
    protocol server. Each public method is a single critical section, so two
    calls from different threads never observe each other half-applied.

    An exception escaping a write section poisons the store: the sequence may
    be partially mutated, so every later call raises StorePoisonedError.
    """

    def __init__(self) -> None:
        self._items: List[Notification] = []
        self._lock = ReadWriteLock()
        self._poisoned: Optional[BaseException] = None

    @contextmanager
    def _reading(self) -> Iterator[List[Notification]]:
        with self._lock.read():
            self._check_poisoned()
            yield self._items

    @contextmanager
    def _writing(self) -> Iterator[List[Notification]]:
        with self._lock.write():
            self._check_poisoned()
            try:
                yield self._items
            except BaseException as exc:
                self._poisoned = exc
                logger.critical("Notification store poisoned by failed write: %r", exc)
                raise

    def _check_poisoned(self) -> None:
        if self._poisoned is not None:
            raise StorePoisonedError(
                "notification store is poisoned by an earlier failed write",
                cause=self._poisoned if isinstance(self._poisoned, Exception) else None,
            )

    @property
    def poisoned(self) -> bool:
        return self._poisoned is not None

    def add(self, notification: Notification) -> None:
        """Append a notification at the end of the sequence."""
        with self._writing() as items:
            items.append(notification.copy())

    def count(self) -> int:
        with self._reading() as items:
            return len(items)

    def items(self) -> List[Notification]:
        """Return a point-in-time copy of every stored notification, in order."""
        with self._reading() as items:
            return [item.copy() for item in items]

    def get(self, notification_id: int) -> Optional[Notification]:
        """Return a copy of the notification with this id, if stored."""
        with self._reading() as items:
            for item in items:
                if item.id == notification_id:
                    return item.copy()
        return None

    def delete(self, notification_id: int) -> None:
        """Remove the notification with this id; absent ids are ignored."""
        with self._writing() as items:
            items[:] = [item for item in items if item.id != notification_id]

    def delete_from_app(self, app_name: str) -> None:
        """Remove every notification sent by ``app_name``."""
        with self._writing() as items:
            items[:] = [item for item in items if item.application != app_name]

    def delete_all(self) -> None:
        with self._writing() as items:
            items.clear()

    def set_urgency(self, notification_id: int, urgency: Urgency) -> None:
        """Change the urgency of the matching notification in place."""
        with self._writing() as items:
            for item in items:
                if item.id == notification_id:
                    item.urgency = Urgency.from_value(urgency)
                    break
