"""Single consumer loop applying upstream actions to the store."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from nh_daemon.event_bus import EventBus
from nh_daemon.models.actions import Action, Close, CloseAll, Show, ShowLast, Shutdown
from nh_daemon.models.notification import Notification
from nh_daemon.store import NotificationStore

logger = logging.getLogger(__name__)


class ActionDispatcher:
    """Consume actions from the bus one at a time until a Shutdown arrives.

    The dispatcher is the only place where ``Show`` events reach the store.
    Each action is applied completely before the next one is received, which
    gives a total order over everything sent on the bus. Protocol clients
    mutate the store from other threads and are ordered only by the store lock.

    The dispatcher also remembers the id of the most recently shown
    notification so ``ShowLast`` and ``Close(None)`` have a target.
    """

    def __init__(
        self,
        store: NotificationStore,
        bus: EventBus,
        *,
        on_show_last: Optional[Callable[[Notification], None]] = None,
    ) -> None:
        self.store = store
        self.bus = bus
        self._on_show_last = on_show_last
        self._last_shown_id: Optional[int] = None
        self._running = False

    @property
    def last_shown_id(self) -> Optional[int]:
        return self._last_shown_id

    @property
    def running(self) -> bool:
        return self._running

    def run(self) -> None:
        """Block until shutdown.

        Returns normally on a graceful ``Shutdown``; re-raises the carried
        error on a fatal one. Store failures propagate unchanged.
        """
        self._running = True
        try:
            while True:
                action = self.bus.receive()
                if not self.handle(action):
                    return
        finally:
            self._running = False

    def handle(self, action: Action) -> bool:
        """Apply one action; return False once the loop should stop."""
        if isinstance(action, Show):
            self._show(action.notification)
        elif isinstance(action, ShowLast):
            self._show_last()
        elif isinstance(action, Close):
            self._close(action.id)
        elif isinstance(action, CloseAll):
            logger.debug("Closing all notifications")
            self.store.delete_all()
            self._last_shown_id = None
        elif isinstance(action, Shutdown):
            return self._shutdown(action)
        else:
            raise TypeError(f"Unsupported action: {action!r}")
        return True

    def _show(self, notification: Notification) -> None:
        logger.debug(
            "Received notification %s from %r: %s",
            notification.id,
            notification.application,
            notification.summary,
        )
        self.store.add(notification)
        self._last_shown_id = notification.id

    def _show_last(self) -> None:
        if self._last_shown_id is None:
            logger.debug("ShowLast ignored: nothing shown yet")
            return
        notification = self.store.get(self._last_shown_id)
        if notification is None:
            logger.debug("ShowLast ignored: notification %s already closed", self._last_shown_id)
            return
        logger.debug("Showing the last notification (%s)", notification.id)
        if self._on_show_last is not None:
            self._on_show_last(notification)

    def _close(self, notification_id: Optional[int]) -> None:
        if notification_id is None:
            notification_id = self._last_shown_id
            if notification_id is None:
                logger.debug("Close of last notification ignored: nothing shown yet")
                return
        logger.debug("Closing notification %s", notification_id)
        self.store.delete(notification_id)
        if notification_id == self._last_shown_id:
            self._last_shown_id = None

    def _shutdown(self, action: Shutdown) -> bool:
        if action.error is None:
            logger.info("Dispatcher received shutdown request")
            return False
        logger.error("Dispatcher received fatal error: %s", action.error)
        raise action.error
