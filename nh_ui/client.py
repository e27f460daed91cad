"""Client for the hub's rendezvous socket."""

from __future__ import annotations

import json
import socket
from pathlib import Path
from typing import List

from nh_common.errors import NHError
from nh_daemon.models.notification import Notification
from nh_daemon.protocol import (
    Command,
    Count,
    DeleteApps,
    DeleteOne,
    DeleteSimilar,
    List as ListCommand,
    MarkSeen,
    format_command,
)


class HubConnectionError(NHError):
    """The hub socket could not be reached or answered unexpectedly."""


class HubClient:
    """Send one protocol command per connection and read the reply."""

    def __init__(self, socket_path: Path | str, timeout: float = 5.0) -> None:
        self.socket_path = Path(socket_path)
        self.timeout = timeout

    def request(self, command: Command) -> bytes:
        """Send ``command`` and return the raw response (empty when none)."""
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
                sock.settimeout(self.timeout)
                sock.connect(str(self.socket_path))
                sock.sendall(format_command(command).encode("utf-8"))
                sock.shutdown(socket.SHUT_WR)
                chunks: List[bytes] = []
                while True:
                    chunk = sock.recv(65536)
                    if not chunk:
                        break
                    chunks.append(chunk)
        except OSError as exc:
            raise HubConnectionError(
                f"Cannot talk to hub at {self.socket_path}: {exc.strerror or exc}",
                context={"socket_path": self.socket_path},
                cause=exc,
            ) from exc
        return b"".join(chunks)

    def count(self) -> int:
        raw = self.request(Count())
        try:
            return int(raw.decode("utf-8"))
        except ValueError as exc:
            raise HubConnectionError(f"Unexpected count reply: {raw[:64]!r}", cause=exc) from exc

    def list(self) -> List[Notification]:
        raw = self.request(ListCommand())
        try:
            payload = json.loads(raw.decode("utf-8"))
            if not isinstance(payload, list):
                raise ValueError("expected a JSON array")
            return [Notification.from_dict(item) for item in payload]
        except (ValueError, TypeError) as exc:
            raise HubConnectionError(f"Unexpected list reply: {exc}", cause=exc) from exc

    def delete(self, notification_id: int) -> None:
        self.request(DeleteOne(notification_id))

    def delete_similar(self, notification_id: int) -> None:
        self.request(DeleteSimilar(notification_id))

    def delete_app(self, app_name: str) -> None:
        self.request(DeleteApps(app_name))

    def mark_seen(self, notification_id: int) -> None:
        self.request(MarkSeen(notification_id))
