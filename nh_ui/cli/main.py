"""
Command-line interface for notifyhub.

Runs the hub daemon and exposes the query protocol (count, list, delete, mark
seen) plus a way to push upstream events into the hub's event pipe.
"""

from __future__ import annotations

import errno
import json
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from nh_common.config import HubConfig, load_config, resolve_config_path
from nh_common.errors import DIAGNOSTIC_PREFIX, NHError, describe_error
from nh_common.logging import configure_logging
from nh_daemon.daemon import EXIT_OK, NotificationHub
from nh_daemon.models.actions import Action, Close, CloseAll, Show, ShowLast
from nh_daemon.models.notification import U32_MAX, Notification, Urgency
from nh_daemon.upstream import encode_event
from nh_ui.client import HubClient
from nh_ui.presenters import render_notifications

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


@dataclass
class CLIContext:
    """Options shared by every command, resolved lazily."""

    config_path: Optional[Path] = None
    socket_override: Optional[Path] = None
    _config: Optional[HubConfig] = field(default=None, repr=False)

    @property
    def config(self) -> HubConfig:
        if self._config is None:
            self._config = load_config(self.config_path)
        return self._config

    @property
    def socket_path(self) -> Path:
        return self.socket_override or self.config.daemon.socket_path

    def client(self) -> HubClient:
        return HubClient(self.socket_path)


ctx_store = CLIContext()

app = typer.Typer(help="Local notification hub and its query client.", no_args_is_help=True)
config_app = typer.Typer(help="Inspect the hub configuration.", no_args_is_help=True)


def _fail(problem: str | BaseException) -> None:
    if isinstance(problem, BaseException):
        text = describe_error(problem)
    else:
        text = f"{DIAGNOSTIC_PREFIX}: {problem}"
    err_console.print(text, style="red")
    raise typer.Exit(1)


@app.callback()
def entry(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file (default: $XDG_CONFIG_HOME/notifyhub/notifyhub.toml).",
    ),
    socket_path: Optional[Path] = typer.Option(
        None,
        "--socket",
        "-s",
        help="Rendezvous socket path (overrides the configuration).",
    ),
) -> None:
    """Global options shared by every command."""
    configure_logging()
    ctx_store.config_path = config
    ctx_store.socket_override = socket_path
    ctx_store._config = None


@app.command("daemon")
def run_daemon(
    fifo: Optional[Path] = typer.Option(None, "--fifo", help="Named pipe carrying upstream events."),
    poll_timeout_ms: Optional[int] = typer.Option(
        None, "--poll-timeout-ms", min=1, help="How long to wait for upstream events per poll."
    ),
    threaded: Optional[bool] = typer.Option(
        None,
        "--threaded/--sequential",
        help="Serve each client connection on its own thread.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
    json_logs: Optional[bool] = typer.Option(None, "--json-logs/--console-logs", help="Render logs as JSON."),
    syslog: Optional[bool] = typer.Option(None, "--syslog/--no-syslog", help="Also log to syslog."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file."),
) -> None:
    """Run the notification hub in the foreground."""
    configure_logging(debug=debug, json=json_logs, syslog=syslog, log_file=log_file, force=True)
    try:
        config = ctx_store.config
    except NHError as exc:
        _fail(exc)
        return
    updates: dict = {"socket_path": ctx_store.socket_path}
    if fifo is not None:
        updates["event_fifo"] = fifo
    if poll_timeout_ms is not None:
        updates["poll_timeout_ms"] = poll_timeout_ms
    if threaded is not None:
        updates["per_connection_threads"] = threaded
    settings = config.daemon.model_copy(update=updates)

    hub = NotificationHub(settings)
    code = hub.run()
    if code != EXIT_OK:
        err_console.print(describe_error(hub.error), style="red")
    raise typer.Exit(code)


@app.command("count")
def count() -> None:
    """Print the number of active notifications."""
    try:
        typer.echo(ctx_store.client().count())
    except NHError as exc:
        _fail(exc)


@app.command("list")
def list_notifications(
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON records."),
) -> None:
    """List active notifications."""
    try:
        notifications = ctx_store.client().list()
        if as_json:
            typer.echo(json.dumps([item.to_dict() for item in notifications], indent=2))
            return
        render_notifications(console, notifications, ctx_store.config)
    except NHError as exc:
        _fail(exc)


def _id_argument():
    return typer.Argument(..., min=0, max=U32_MAX, help="Notification id.")


@app.command("delete")
def delete(notification_id: int = _id_argument()) -> None:
    """Delete one notification."""
    try:
        ctx_store.client().delete(notification_id)
    except NHError as exc:
        _fail(exc)


@app.command("delete-similar")
def delete_similar(notification_id: int = _id_argument()) -> None:
    """Delete every notification from the same application as this one."""
    try:
        ctx_store.client().delete_similar(notification_id)
    except NHError as exc:
        _fail(exc)


@app.command("delete-app")
def delete_app(app_name: str = typer.Argument(..., help="Application name.")) -> None:
    """Delete every notification sent by an application."""
    try:
        ctx_store.client().delete_app(app_name)
    except NHError as exc:
        _fail(exc)


@app.command("seen")
def mark_seen(notification_id: int = _id_argument()) -> None:
    """Mark a notification as seen (resets its urgency to normal)."""
    try:
        ctx_store.client().mark_seen(notification_id)
    except NHError as exc:
        _fail(exc)


def _parse_hints(raw_hints: List[str]) -> dict[str, str]:
    hints: dict[str, str] = {}
    for token in raw_hints:
        if "=" not in token:
            raise typer.BadParameter(f"hint must be KEY=VALUE, got: {token}", param_hint="--hint")
        key, value = token.split("=", 1)
        hints[key.strip()] = value
    return hints


def _write_event(fifo: Path, action: Action) -> None:
    """Write one event line into the hub's pipe without blocking on a missing reader."""
    try:
        fd = os.open(fifo, os.O_WRONLY | os.O_NONBLOCK)
    except OSError as exc:
        if exc.errno == errno.ENXIO:
            _fail(f"no hub is reading {fifo}")
        _fail(f"cannot open {fifo}: {exc.strerror or exc}")
        return
    try:
        os.set_blocking(fd, True)
        os.write(fd, encode_event(action).encode("utf-8"))
    except OSError as exc:
        _fail(f"cannot write to {fifo}: {exc.strerror or exc}")
    finally:
        os.close(fd)


def _event_fifo(fifo: Optional[Path]) -> Path:
    if fifo is not None:
        return fifo
    try:
        return ctx_store.config.daemon.event_fifo
    except NHError as exc:
        _fail(exc)
        raise


@app.command("send")
def send(
    summary: str = typer.Argument(..., help="Notification summary."),
    body: str = typer.Option("", "--body", "-b", help="Notification body."),
    app_name: str = typer.Option("notifyhub", "--app", "-a", help="Sending application name."),
    icon: str = typer.Option("", "--icon", help="Icon name."),
    urgency: str = typer.Option("normal", "--urgency", "-u", help="low, normal or critical."),
    notification_id: Optional[int] = typer.Option(
        None, "--id", min=0, max=U32_MAX, help="Notification id (default: derived from the clock)."
    ),
    actions: List[str] = typer.Option([], "--action", help="Action identifier (repeatable)."),
    hints: List[str] = typer.Option([], "--hint", help="KEY=VALUE hint (repeatable)."),
    fifo: Optional[Path] = typer.Option(None, "--fifo", help="Named pipe the hub reads events from."),
) -> None:
    """Push a notification into a running hub as an upstream event."""
    if urgency.strip().lower() not in ("low", "normal", "critical"):
        raise typer.BadParameter("urgency must be low, normal or critical", param_hint="--urgency")
    now = time.time()
    notification = Notification(
        id=notification_id if notification_id is not None else int(now * 1000) % (U32_MAX + 1),
        summary=summary,
        body=body,
        application=app_name,
        icon=icon,
        urgency=Urgency.from_value(urgency),
        actions=list(actions),
        hints=_parse_hints(hints),
        timestamp=int(now),
    )
    _write_event(_event_fifo(fifo), Show(notification))
    typer.echo(notification.id)


@app.command("close")
def close(
    notification_id: Optional[int] = typer.Argument(
        None, min=0, max=U32_MAX, help="Notification id (default: the most recently shown)."
    ),
    close_all: bool = typer.Option(False, "--all", help="Close every notification."),
    fifo: Optional[Path] = typer.Option(None, "--fifo", help="Named pipe the hub reads events from."),
) -> None:
    """Send an upstream close event."""
    action: Action = CloseAll() if close_all else Close(notification_id)
    _write_event(_event_fifo(fifo), action)


@app.command("show-last")
def show_last(
    fifo: Optional[Path] = typer.Option(None, "--fifo", help="Named pipe the hub reads events from."),
) -> None:
    """Ask the hub to re-surface the most recently shown notification."""
    _write_event(_event_fifo(fifo), ShowLast())


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration as JSON."""
    try:
        config = ctx_store.config
    except NHError as exc:
        _fail(exc)
        return
    typer.echo(json.dumps(config.model_dump(mode="json", by_alias=True), indent=2))


@config_app.command("path")
def config_path() -> None:
    """Print the configuration file in use, or '-' for built-in defaults."""
    path = resolve_config_path(ctx_store.config_path)
    typer.echo(str(path) if path is not None else "-")


app.add_typer(config_app, name="config")


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
