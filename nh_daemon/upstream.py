"""Upstream notification sources feeding the event bus."""

from __future__ import annotations

import json
import logging
import os
import selectors
import stat
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional

from nh_common.errors import RegistrationError, UpstreamEventError
from nh_daemon.event_bus import EventBus
from nh_daemon.models.actions import Action, Close, CloseAll, Show, ShowLast, Shutdown
from nh_daemon.models.notification import U32_MAX, Notification

logger = logging.getLogger(__name__)

READ_CHUNK = 64 * 1024
MAX_EVENT_BYTES = 64 * 1024
FIFO_MODE = 0o600


class UpstreamAdapter(ABC):
    """Source of Show/Close events for the dispatcher."""

    @abstractmethod
    def register_notification_handler(self, sink: EventBus, poll_timeout: float) -> None:
        """Block, sending one action onto ``sink`` per upstream event.

        Returns only after ``stop``; raises RegistrationError when the source
        cannot be registered at all.
        """

    @abstractmethod
    def stop(self) -> None:
        """Unregister and make ``register_notification_handler`` return."""

    def run(self, sink: EventBus, poll_timeout: float) -> None:
        """Thread target: register, converting registration failures to Shutdown."""
        try:
            self.register_notification_handler(sink, poll_timeout)
        except RegistrationError as exc:
            logger.error("Upstream source failed: %s", exc)
            sink.send(Shutdown(exc))
        except Exception as exc:
            logger.exception("Upstream source crashed")
            sink.send(Shutdown(exc))


def parse_event_line(line: str, *, now: Optional[float] = None) -> Action:
    """Decode one JSON event line into an action.

    Raises UpstreamEventError on malformed input.
    """
    try:
        data = json.loads(line)
    except (ValueError, RecursionError) as exc:
        raise UpstreamEventError(f"Event is not valid JSON: {exc}", cause=exc) from exc
    if not isinstance(data, dict):
        raise UpstreamEventError("Event must be a JSON object")

    kind = data.get("action")
    if kind == "show":
        return Show(_notification_from_event(data.get("notification"), now))
    if kind == "show_last":
        return ShowLast()
    if kind == "close":
        return Close(_optional_id(data.get("id")))
    if kind == "close_all":
        return CloseAll()
    raise UpstreamEventError(f"Unknown event action: {kind!r}", context={"action": kind})


def _notification_from_event(payload: Any, now: Optional[float]) -> Notification:
    if not isinstance(payload, dict):
        raise UpstreamEventError("'show' event requires a notification object")
    fields = dict(payload)
    if fields.get("timestamp") is None:
        fields["timestamp"] = int(time.time() if now is None else now)
    try:
        return Notification.from_dict(fields)
    except ValueError as exc:
        raise UpstreamEventError(f"Invalid notification: {exc}", cause=exc) from exc


def _optional_id(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U32_MAX:
        raise UpstreamEventError(f"Invalid notification id: {value!r}")
    return value


def encode_event(action: Action) -> str:
    """Render an action as one JSON event line (newline included)."""
    payload: dict[str, Any]
    if isinstance(action, Show):
        payload = {"action": "show", "notification": action.notification.to_dict()}
    elif isinstance(action, ShowLast):
        payload = {"action": "show_last"}
    elif isinstance(action, Close):
        payload = {"action": "close"}
        if action.id is not None:
            payload["id"] = action.id
    elif isinstance(action, CloseAll):
        payload = {"action": "close_all"}
    else:
        raise TypeError(f"Action cannot be sent upstream: {action!r}")
    return json.dumps(payload) + "\n"


def dispatch_lines(lines: Iterable[str], sink: EventBus) -> int:
    """Decode event lines and send the resulting actions; return how many were sent.

    Blank lines are skipped and malformed lines are logged and dropped.
    """
    sent = 0
    for line in lines:
        if not line.strip():
            continue
        try:
            action = parse_event_line(line)
        except UpstreamEventError as exc:
            logger.warning("Dropping upstream event: %s", exc)
            continue
        sink.send(action)
        sent += 1
    return sent


class LineSplitter:
    """Split a byte stream into newline-terminated lines of bounded length.

    A line longer than ``limit`` is dropped whole: the pending bytes are
    discarded and everything up to the next newline is skipped.
    """

    def __init__(self, limit: int = MAX_EVENT_BYTES) -> None:
        self.limit = limit
        self._pending = b""
        self._discarding = False

    def feed(self, chunk: bytes) -> List[bytes]:
        *complete, pending = (self._pending + chunk).split(b"\n")
        if self._discarding and complete:
            complete.pop(0)
            self._discarding = False
        lines = []
        for raw in complete:
            if len(raw) > self.limit:
                logger.warning("Dropping upstream event of %d bytes", len(raw))
                continue
            lines.append(raw)
        if len(pending) > self.limit:
            logger.warning("Dropping upstream event longer than %d bytes", self.limit)
            pending = b""
            self._discarding = True
        elif self._discarding:
            pending = b""
        self._pending = pending
        return lines


class FifoEventSource(UpstreamAdapter):
    """Read JSON-lines events from a named pipe.

    The pipe is created on demand. A write handle is held open by the reader
    itself so the pipe never reports EOF between producers.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._stop_event = threading.Event()
        self._ready = threading.Event()

    @property
    def ready(self) -> threading.Event:
        """Set once the pipe is open for reading."""
        return self._ready

    def stop(self) -> None:
        self._stop_event.set()

    def _ensure_fifo(self) -> None:
        try:
            mode = os.stat(self.path).st_mode
        except FileNotFoundError:
            try:
                os.mkfifo(self.path, FIFO_MODE)
            except OSError as exc:
                raise RegistrationError(
                    f"Cannot create event pipe {self.path}: {exc.strerror or exc}",
                    context={"path": self.path},
                    cause=exc,
                ) from exc
            return
        if not stat.S_ISFIFO(mode):
            raise RegistrationError(
                f"{self.path} exists and is not a named pipe", context={"path": self.path}
            )

    def _open(self) -> tuple[int, int]:
        self._ensure_fifo()
        try:
            read_fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            raise RegistrationError(
                f"Cannot open event pipe {self.path}: {exc.strerror or exc}",
                context={"path": self.path},
                cause=exc,
            ) from exc
        try:
            keepalive_fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as exc:
            os.close(read_fd)
            raise RegistrationError(
                f"Cannot hold event pipe {self.path} open: {exc.strerror or exc}",
                context={"path": self.path},
                cause=exc,
            ) from exc
        return read_fd, keepalive_fd

    def register_notification_handler(self, sink: EventBus, poll_timeout: float) -> None:
        read_fd, keepalive_fd = self._open()
        logger.info("Reading upstream events from %s", self.path)
        self._ready.set()
        splitter = LineSplitter()
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(read_fd, selectors.EVENT_READ)
                while not self._stop_event.is_set():
                    if not selector.select(timeout=poll_timeout):
                        continue
                    try:
                        chunk = os.read(read_fd, READ_CHUNK)
                    except BlockingIOError:
                        continue
                    except OSError as exc:
                        raise RegistrationError(
                            f"Cannot read event pipe {self.path}: {exc.strerror or exc}",
                            context={"path": self.path},
                            cause=exc,
                        ) from exc
                    if not chunk:
                        continue
                    dispatch_lines(
                        (raw.decode("utf-8", errors="replace") for raw in splitter.feed(chunk)),
                        sink,
                    )
        finally:
            os.close(keepalive_fd)
            os.close(read_fd)
            logger.info("Stopped reading upstream events from %s", self.path)
