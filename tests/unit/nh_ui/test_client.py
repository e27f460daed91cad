"""Tests for the hub socket client."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from nh_daemon.models import Notification
from nh_daemon.protocol import Count, DeleteApps, DeleteOne, DeleteSimilar, List, MarkSeen
from nh_ui.client import HubClient, HubConnectionError

pytestmark = pytest.mark.unit_ui


class RecordingClient(HubClient):
    def __init__(self, reply: bytes = b"") -> None:
        super().__init__("/nonexistent/hub.sock")
        self.reply = reply
        self.sent = []

    def request(self, command):
        self.sent.append(command)
        return self.reply


def test_missing_socket_is_connection_error(tmp_path: Path) -> None:
    client = HubClient(tmp_path / "absent.sock", timeout=0.5)
    with pytest.raises(HubConnectionError) as excinfo:
        client.count()
    assert excinfo.value.context["socket_path"].endswith("absent.sock")


def test_count_parses_decimal_reply() -> None:
    client = RecordingClient(b"12")
    assert client.count() == 12
    assert client.sent == [Count()]


def test_count_rejects_garbage() -> None:
    with pytest.raises(HubConnectionError):
        RecordingClient(b"").count()


def test_list_decodes_notifications() -> None:
    reply = json.dumps([Notification(id=4, summary="s", timestamp=1).to_dict()]).encode()
    client = RecordingClient(reply)

    assert client.list() == [Notification(id=4, summary="s", timestamp=1)]
    assert client.sent == [List()]


@pytest.mark.parametrize("reply", [b"", b"{}", b"[1]", b'[{"summary": "no id"}]'])
def test_list_rejects_unexpected_replies(reply: bytes) -> None:
    with pytest.raises(HubConnectionError):
        RecordingClient(reply).list()


def test_mutations_send_matching_commands() -> None:
    client = RecordingClient()

    client.delete(1)
    client.delete_similar(2)
    client.delete_app("mail")
    client.mark_seen(3)

    assert client.sent == [DeleteOne(1), DeleteSimilar(2), DeleteApps("mail"), MarkSeen(3)]
