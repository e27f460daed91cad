"""Client side of notifyhub: protocol client, presenters and CLI."""

from nh_ui.client import HubClient, HubConnectionError

__all__ = ["HubClient", "HubConnectionError"]
