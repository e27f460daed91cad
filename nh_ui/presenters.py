"""Rich rendering for hub query results."""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

from rich.console import Console
from rich.style import Style
from rich.table import Table

from nh_common.config import HubConfig
from nh_daemon.models.notification import Notification


def _format_timestamp(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def build_notification_rows(notifications: Sequence[Notification]) -> List[List[str]]:
    """Flatten notifications into table rows (id, app, urgency, summary, body, received)."""
    return [
        [
            str(item.id),
            item.application or "-",
            str(item.urgency),
            item.summary,
            item.body,
            _format_timestamp(item.timestamp),
        ]
        for item in notifications
    ]


def build_notification_table(notifications: Sequence[Notification], config: HubConfig) -> Table:
    """Build a table whose rows use the configured colours of each urgency."""
    table = Table(title="Notifications", show_header=True, header_style="bold")
    for column in ("ID", "Application", "Urgency", "Summary", "Body", "Received"):
        table.add_column(column, overflow="fold")
    for item, row in zip(notifications, build_notification_rows(notifications)):
        colours = config.get_urgency_config(item.urgency)
        table.add_row(*row, style=Style(color=colours.foreground, bgcolor=colours.background))
    return table


def render_notifications(console: Console, notifications: Sequence[Notification], config: HubConfig) -> None:
    if not notifications:
        console.print("No notifications.", style="yellow")
        return
    console.print(build_notification_table(notifications, config))
