"""Notification hub daemon: store, dispatcher, protocol server and upstream source."""

from nh_daemon.api import Notification, NotificationHub, NotificationStore, Urgency

__all__ = ["Notification", "NotificationHub", "NotificationStore", "Urgency"]
