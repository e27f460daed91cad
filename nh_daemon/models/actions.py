"""Events consumed by the action dispatcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from nh_daemon.models.notification import Notification


@dataclass(frozen=True)
class Show:
    """A new notification arrived upstream."""

    notification: Notification


@dataclass(frozen=True)
class ShowLast:
    """Re-surface the most recently shown notification."""


@dataclass(frozen=True)
class Close:
    """Close one notification, or the most recently shown one when id is None."""

    id: Optional[int] = None


@dataclass(frozen=True)
class CloseAll:
    """Close every notification."""


@dataclass(frozen=True)
class Shutdown:
    """Stop the dispatcher; ``error`` is None for a graceful stop."""

    error: Optional[BaseException] = None

    @property
    def fatal(self) -> bool:
        return self.error is not None


Action = Union[Show, ShowLast, Close, CloseAll, Shutdown]
