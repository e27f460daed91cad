"""Stop token turning SIGINT/SIGTERM into a graceful hub shutdown."""

from __future__ import annotations

import logging
import signal
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class StopToken:
    """
    Lightweight cooperative stop controller.

    It is tripped by SIGINT/SIGTERM or by ``request_stop``; the ``on_stop``
    callback fires exactly once. Signal handlers can only be installed from the
    main thread; elsewhere the token still works through ``request_stop``.
    """

    def __init__(
        self,
        enable_signals: bool = True,
        on_stop: Optional[Callable[[], None]] = None,
    ) -> None:
        self._on_stop = on_stop
        self._stop_requested = False
        self._prev_handlers: Dict[int, Callable] = {}
        if enable_signals:
            self._install_signal_handlers()

    def _install_signal_handlers(self) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._prev_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, self._handle_signal)  # type: ignore[arg-type]
            except ValueError:
                # Not on the main thread.
                self._prev_handlers.pop(sig, None)
                continue

    def _handle_signal(self, signum: int, frame) -> None:  # type: ignore[override]
        logger.info("Received signal %s, shutting down", signal.Signals(signum).name)
        self.request_stop()

    def request_stop(self) -> None:
        """Mark the token as stopped and trigger callback once."""
        if self._stop_requested:
            return
        self._stop_requested = True
        if self._on_stop:
            self._on_stop()

    def should_stop(self) -> bool:
        return self._stop_requested

    def restore(self) -> None:
        """Restore original signal handlers."""
        for sig, handler in self._prev_handlers.items():
            if handler is None:
                continue
            try:
                signal.signal(sig, handler)  # type: ignore[arg-type]
            except ValueError:
                continue
        self._prev_handlers.clear()

    def __enter__(self) -> "StopToken":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()
