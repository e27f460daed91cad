"""Tests for the socket line protocol."""

from __future__ import annotations

import json

import pytest

from nh_common.errors import ProtocolParseError
from nh_daemon.models import Notification, Urgency
from nh_daemon.protocol import (
    Count,
    DeleteApps,
    DeleteOne,
    DeleteSimilar,
    List,
    MarkSeen,
    execute_command,
    format_command,
    parse_command,
)
from nh_daemon.store import NotificationStore

pytestmark = pytest.mark.unit_daemon


@pytest.mark.parametrize(
    "line, expected",
    [
        ("num", Count()),
        ("num\n", Count()),
        ("list\r\n", List()),
        ("del:42", DeleteOne(42)),
        ("dels:7\n", DeleteSimilar(7)),
        ("saw:0", MarkSeen(0)),
        ("saw:4294967295", MarkSeen(4294967295)),
        ("del:0001", DeleteOne(1)),
        ("dels:" + "0" * 5000 + "12", DeleteSimilar(12)),
        ("dela:firefox\n", DeleteApps("firefox")),
        ("dela: Slack \n", DeleteApps("Slack")),
        ("dela:app:with:colons", DeleteApps("app:with:colons")),
    ],
)
def test_parse_valid_lines(line: str, expected) -> None:
    assert parse_command(line) == expected


@pytest.mark.parametrize(
    "line",
    [
        "",
        "\n",
        "bogus",
        "NUM",
        "num:x",
        "list:all",
        "del",
        "del:",
        "del:abc",
        "del:-1",
        "del:1.5",
        "del:4294967296",
        "del:" + "9" * 5000,
        "saw:" + "1" * 11,
        "saw:",
        "dels:12a",
        "dela",
    ],
)
def test_parse_rejects_malformed_lines(line: str) -> None:
    with pytest.raises(ProtocolParseError):
        parse_command(line)


@pytest.mark.parametrize(
    "command, line",
    [
        (Count(), "num\n"),
        (List(), "list\n"),
        (DeleteOne(3), "del:3\n"),
        (DeleteSimilar(3), "dels:3\n"),
        (DeleteApps("mail"), "dela:mail\n"),
        (MarkSeen(9), "saw:9\n"),
    ],
)
def test_format_command(command, line: str) -> None:
    assert format_command(command) == line
    assert parse_command(line) == command


def _store_with(*notifications: Notification) -> NotificationStore:
    store = NotificationStore()
    for notification in notifications:
        store.add(notification)
    return store


def test_count_returns_decimal_text() -> None:
    store = _store_with(Notification(id=1), Notification(id=2), Notification(id=3))
    assert execute_command(Count(), store) == b"3"
    assert execute_command(Count(), NotificationStore()) == b"0"


def test_list_returns_json_array_in_store_order() -> None:
    store = _store_with(
        Notification(id=2, summary="second", application="b", urgency=Urgency.CRITICAL, timestamp=5),
        Notification(id=1, summary="first", application="a"),
    )

    payload = json.loads(execute_command(List(), store))

    assert [item["id"] for item in payload] == [2, 1]
    assert payload[0]["urgency"] == 2
    assert payload[0]["summary"] == "second"
    assert set(payload[0]) == {
        "id",
        "summary",
        "body",
        "application",
        "icon",
        "urgency",
        "actions",
        "hints",
        "timestamp",
    }
    assert json.loads(execute_command(List(), NotificationStore())) == []


def test_mutating_commands_have_no_response() -> None:
    store = _store_with(
        Notification(id=1, application="foo", urgency=Urgency.CRITICAL),
        Notification(id=2, application="bar"),
        Notification(id=3, application="foo"),
    )

    assert execute_command(MarkSeen(1), store) is None
    assert store.get(1).urgency is Urgency.NORMAL

    assert execute_command(DeleteOne(2), store) is None
    assert [item.id for item in store.items()] == [1, 3]

    assert execute_command(DeleteApps("foo"), store) is None
    assert store.count() == 0


def test_delete_similar_removes_same_application() -> None:
    store = _store_with(
        Notification(id=1, application="foo"),
        Notification(id=2, application="bar"),
        Notification(id=3, application="foo"),
    )

    assert execute_command(DeleteSimilar(3), store) is None

    assert [item.id for item in store.items()] == [2]


def test_delete_similar_ignores_unknown_id_and_empty_application() -> None:
    store = _store_with(
        Notification(id=1, application=""),
        Notification(id=2, application=""),
        Notification(id=3, application="bar"),
    )

    execute_command(DeleteSimilar(99), store)
    execute_command(DeleteSimilar(1), store)

    assert store.count() == 3
