"""Data models shared across the daemon components."""

from nh_daemon.models.actions import Action, Close, CloseAll, Show, ShowLast, Shutdown
from nh_daemon.models.notification import U32_MAX, Notification, Urgency

__all__ = [
    "Action",
    "Close",
    "CloseAll",
    "Notification",
    "Show",
    "ShowLast",
    "Shutdown",
    "U32_MAX",
    "Urgency",
]
