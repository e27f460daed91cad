"""Unix-socket server answering protocol requests against the store."""

from __future__ import annotations

import logging
import os
import socket
import stat
import threading
from pathlib import Path
from typing import Optional

from nh_common.errors import BindError, NHError, ProtocolParseError
from nh_daemon.event_bus import EventBus
from nh_daemon.models.actions import Shutdown
from nh_daemon.protocol import execute_command, parse_command
from nh_daemon.store import NotificationStore

logger = logging.getLogger(__name__)

MAX_REQUEST_BYTES = 64 * 1024
LISTEN_BACKLOG = 16
ACCEPT_POLL_SECONDS = 0.5


class ProtocolServer:
    """Serve one request per connection on a Unix stream socket.

    Query commands run synchronously against the store so the waiting client
    gets its answer on the same connection. Fatal failures (bind errors, a
    poisoned store, a broken listener) are pushed onto the bus as
    ``Shutdown(err)`` so the dispatcher can stop the whole process.
    """

    def __init__(
        self,
        socket_path: Path | str,
        store: NotificationStore,
        bus: EventBus,
        *,
        per_connection_threads: bool = False,
    ) -> None:
        self.socket_path = Path(socket_path)
        self.store = store
        self.bus = bus
        self.per_connection_threads = per_connection_threads
        self._listener: Optional[socket.socket] = None
        self._stop_event = threading.Event()
        self._ready = threading.Event()
        self._listener_lock = threading.Lock()

    @property
    def ready(self) -> threading.Event:
        """Set once the socket is bound and listening."""
        return self._ready

    def bind(self) -> None:
        """Create the listening socket, replacing a stale socket file."""
        self._remove_stale_socket()
        listener = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            listener.bind(str(self.socket_path))
            listener.listen(LISTEN_BACKLOG)
            listener.settimeout(ACCEPT_POLL_SECONDS)
        except OSError as exc:
            listener.close()
            raise BindError(
                f"Cannot bind {self.socket_path}: {exc.strerror or exc}",
                context={"socket_path": self.socket_path},
                cause=exc,
            ) from exc
        self._listener = listener
        logger.info("Listening for clients on %s", self.socket_path)
        self._ready.set()

    def _remove_stale_socket(self) -> None:
        try:
            mode = os.lstat(self.socket_path).st_mode
        except FileNotFoundError:
            return
        except OSError as exc:
            raise BindError(
                f"Cannot inspect {self.socket_path}: {exc.strerror or exc}",
                context={"socket_path": self.socket_path},
                cause=exc,
            ) from exc
        if not stat.S_ISSOCK(mode):
            raise BindError(
                f"{self.socket_path} exists and is not a socket",
                context={"socket_path": self.socket_path},
            )
        logger.debug("Removing stale socket %s", self.socket_path)
        self.socket_path.unlink(missing_ok=True)

    def serve_forever(self) -> None:
        """Accept connections until ``stop`` is called.

        Raises BindError if the listener fails while still expected to run.
        """
        if self._listener is None:
            self.bind()
        listener = self._listener
        assert listener is not None
        while not self._stop_event.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stop_event.is_set():
                    break
                raise BindError(
                    f"Accept failed on {self.socket_path}: {exc}",
                    context={"socket_path": self.socket_path},
                    cause=exc,
                ) from exc
            if self.per_connection_threads:
                threading.Thread(
                    target=self._serve_connection,
                    args=(conn,),
                    name="nh-protocol-conn",
                    daemon=True,
                ).start()
            else:
                self._serve_connection(conn)

    def run(self) -> None:
        """Thread target: serve until stopped, reporting fatal errors on the bus."""
        try:
            self.serve_forever()
        except NHError as exc:
            logger.error("Protocol server stopped: %s", exc)
            self.bus.send(Shutdown(exc))
        except Exception as exc:
            logger.exception("Protocol server crashed")
            self.bus.send(Shutdown(exc))
        finally:
            self._close_listener()

    def stop(self) -> None:
        """Stop accepting clients and remove the socket file."""
        self._stop_event.set()
        listener = self._listener
        if listener is not None:
            try:
                listener.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self._close_listener()

    def _close_listener(self) -> None:
        with self._listener_lock:
            listener, self._listener = self._listener, None
        if listener is None:
            return
        listener.close()
        try:
            if stat.S_ISSOCK(os.lstat(self.socket_path).st_mode):
                self.socket_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove socket %s: %s", self.socket_path, exc)

    def _serve_connection(self, conn: socket.socket) -> None:
        with conn:
            try:
                self.handle_connection(conn)
            except NHError as exc:
                if not exc.fatal:
                    logger.warning("Request failed: %s", exc)
                    return
                logger.critical("Stopping protocol server: %s", exc)
                self.bus.send(Shutdown(exc))
                self._stop_event.set()
            except OSError as exc:
                logger.warning("Client connection failed: %s", exc)
            except Exception as exc:
                logger.exception("Unexpected failure while serving a client")
                self.bus.send(Shutdown(exc))
                self._stop_event.set()

    def handle_connection(self, conn: socket.socket) -> None:
        """Read one request line, execute it, write the response."""
        with conn.makefile("rb") as reader:
            raw = reader.readline(MAX_REQUEST_BYTES)
        try:
            line = raw.decode("utf-8")
            command = parse_command(line)
        except UnicodeDecodeError:
            logger.warning("Dropping request that is not valid UTF-8")
            return
        except ProtocolParseError as exc:
            logger.warning("Dropping malformed request: %s", exc)
            return
        logger.debug("Executing %s", command)
        response = execute_command(command, self.store)
        if response is not None:
            conn.sendall(response)
