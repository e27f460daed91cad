"""Multi-producer, single-consumer channel for dispatcher actions."""

from __future__ import annotations

import queue
from typing import Optional

from nh_daemon.models.actions import Action


class EventBus:
    """Unbounded blocking queue of actions.

    Any thread may ``send``; producers never block. Exactly one consumer (the
    dispatcher) calls ``receive``.
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[Action] = queue.SimpleQueue()

    def send(self, action: Action) -> None:
        self._queue.put(action)

    def receive(self, timeout: Optional[float] = None) -> Action:
        """Block until the next action arrives.

        Raises queue.Empty when ``timeout`` elapses first.
        """
        return self._queue.get(timeout=timeout)

    def pending(self) -> int:
        """Approximate number of queued actions."""
        return self._queue.qsize()
