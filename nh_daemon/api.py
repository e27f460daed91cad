"""Public API surface for nh_daemon."""

from nh_daemon.daemon import EXIT_FAILURE, EXIT_OK, NotificationHub
from nh_daemon.dispatcher import ActionDispatcher
from nh_daemon.event_bus import EventBus
from nh_daemon.models import (
    Action,
    Close,
    CloseAll,
    Notification,
    Show,
    ShowLast,
    Shutdown,
    Urgency,
)
from nh_daemon.protocol import Command, execute_command, format_command, parse_command
from nh_daemon.server import ProtocolServer
from nh_daemon.store import NotificationStore
from nh_daemon.upstream import FifoEventSource, UpstreamAdapter, encode_event, parse_event_line

__all__ = [
    "Action",
    "ActionDispatcher",
    "Close",
    "CloseAll",
    "Command",
    "EXIT_FAILURE",
    "EXIT_OK",
    "EventBus",
    "FifoEventSource",
    "Notification",
    "NotificationHub",
    "NotificationStore",
    "ProtocolServer",
    "Show",
    "ShowLast",
    "Shutdown",
    "UpstreamAdapter",
    "Urgency",
    "encode_event",
    "execute_command",
    "format_command",
    "parse_command",
    "parse_event_line",
]
