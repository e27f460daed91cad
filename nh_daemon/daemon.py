"""Hub runtime: wires the store, bus, dispatcher, server and upstream source."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from nh_common.config import DaemonConfig
from nh_common.errors import NHError, error_to_payload
from nh_daemon.dispatcher import ActionDispatcher
from nh_daemon.event_bus import EventBus
from nh_daemon.models.actions import Shutdown
from nh_daemon.models.notification import Notification
from nh_daemon.server import ProtocolServer
from nh_daemon.stop_token import StopToken
from nh_daemon.store import NotificationStore
from nh_daemon.upstream import FifoEventSource, UpstreamAdapter

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
JOIN_TIMEOUT_SECONDS = 5.0


class NotificationHub:
    """One hub process: a dispatcher on the calling thread plus two listeners.

    The upstream source and the protocol server each get their own thread and
    share the same store and bus. A fatal failure in either thread reaches the
    dispatcher as ``Shutdown(err)`` and makes ``run`` return a failure code.
    """

    def __init__(
        self,
        settings: DaemonConfig,
        *,
        upstream: Optional[UpstreamAdapter] = None,
        on_show_last: Optional[Callable[[Notification], None]] = None,
        install_signals: bool = True,
    ) -> None:
        self.settings = settings
        self.store = NotificationStore()
        self.bus = EventBus()
        self.dispatcher = ActionDispatcher(self.store, self.bus, on_show_last=on_show_last)
        self.server = ProtocolServer(
            settings.socket_path,
            self.store,
            self.bus,
            per_connection_threads=settings.per_connection_threads,
        )
        self.upstream = upstream or FifoEventSource(settings.event_fifo)
        self.install_signals = install_signals
        self.error: Optional[BaseException] = None
        self._threads: list[threading.Thread] = []

    def request_shutdown(self) -> None:
        """Ask the dispatcher to stop gracefully (safe from any thread)."""
        self.bus.send(Shutdown())

    def _start_listeners(self) -> None:
        self._threads = [
            threading.Thread(
                target=self.upstream.run,
                args=(self.bus, self.settings.poll_timeout),
                name="nh-upstream",
                daemon=True,
            ),
            threading.Thread(target=self.server.run, name="nh-protocol", daemon=True),
        ]
        for thread in self._threads:
            logger.debug("Starting %s thread", thread.name)
            thread.start()

    def _stop_listeners(self) -> None:
        self.server.stop()
        self.upstream.stop()
        for thread in self._threads:
            thread.join(timeout=JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning("%s thread did not stop within %.0fs", thread.name, JOIN_TIMEOUT_SECONDS)

    def run(self) -> int:
        """Run until shutdown and return the process exit code."""
        logger.info(
            "Starting notification hub (socket=%s, events=%s)",
            self.settings.socket_path,
            getattr(self.upstream, "path", type(self.upstream).__name__),
        )
        with StopToken(enable_signals=self.install_signals, on_stop=self.request_shutdown):
            self._start_listeners()
            try:
                self.dispatcher.run()
            except NHError as exc:
                self.error = exc
                logger.error("Notification hub failed: %s", exc, extra=error_to_payload(exc))
                return EXIT_FAILURE
            except Exception as exc:
                self.error = exc
                logger.exception("Notification hub failed unexpectedly")
                return EXIT_FAILURE
            finally:
                self._stop_listeners()
        logger.info("Notification hub stopped")
        return EXIT_OK
