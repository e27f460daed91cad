"""Tests for rich rendering of query results."""

from __future__ import annotations

import pytest
from rich.console import Console

from nh_common.config import HubConfig
from nh_daemon.models import Notification, Urgency
from nh_ui.presenters import build_notification_rows, build_notification_table, render_notifications

pytestmark = pytest.mark.unit_ui


def test_rows_flatten_fields() -> None:
    rows = build_notification_rows(
        [
            Notification(id=1, summary="hi", body="there", application="chat", urgency=Urgency.LOW),
            Notification(id=2, summary="no app"),
        ]
    )

    assert rows[0][:5] == ["1", "chat", "low", "hi", "there"]
    assert rows[0][5] == "-"
    assert rows[1][1] == "-"
    assert rows[1][2] == "normal"


def test_table_rows_use_urgency_colours() -> None:
    config = HubConfig()
    table = build_notification_table(
        [Notification(id=1, urgency=Urgency.CRITICAL), Notification(id=2, urgency=Urgency.LOW)],
        config,
    )

    assert table.row_count == 2
    critical_style, low_style = (row.style for row in table.rows)
    assert critical_style.bgcolor.name == config.urgency_critical.background
    assert low_style.color.name == config.urgency_low.foreground


def test_render_empty_and_filled() -> None:
    console = Console(record=True, width=120)

    render_notifications(console, [], HubConfig())
    render_notifications(console, [Notification(id=7, summary="deploy done", application="ci")], HubConfig())

    text = console.export_text()
    assert "No notifications." in text
    assert "deploy done" in text
    assert "ci" in text
