"""Line protocol spoken on the rendezvous socket.

One request line per connection, fields separated by ``:``::

    num              -> number of stored notifications, as decimal text
    list             -> JSON array of every stored notification
    del:<id>         -> delete one notification
    dels:<id>        -> delete every notification from the same application
    dela:<app_name>  -> delete every notification from an application
    saw:<id>         -> reset a notification's urgency to normal

Only ``num`` and ``list`` produce a response payload.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Union

from nh_common.errors import ProtocolParseError
from nh_daemon.models.notification import U32_MAX, Urgency
from nh_daemon.store import NotificationStore

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = ":"
_ID_RE = re.compile(r"^[0-9]+$")
_MAX_ID_DIGITS = len(str(U32_MAX))


@dataclass(frozen=True)
class Count:
    pass


@dataclass(frozen=True)
class List:
    pass


@dataclass(frozen=True)
class DeleteOne:
    id: int


@dataclass(frozen=True)
class DeleteSimilar:
    id: int


@dataclass(frozen=True)
class DeleteApps:
    app_name: str


@dataclass(frozen=True)
class MarkSeen:
    id: int


Command = Union[Count, List, DeleteOne, DeleteSimilar, DeleteApps, MarkSeen]


def _parse_id(token: str, payload: Optional[str]) -> int:
    if payload is None:
        raise ProtocolParseError(f"'{token}' requires an id", context={"command": token})
    raw = payload.strip()
    if not _ID_RE.match(raw):
        raise ProtocolParseError(
            f"'{token}' id is not a number: {payload[:32]!r}", context={"command": token}
        )
    # int() refuses digit strings longer than sys.get_int_max_str_digits().
    digits = raw.lstrip("0") or "0"
    if len(digits) > _MAX_ID_DIGITS or int(digits) > U32_MAX:
        raise ProtocolParseError(
            f"'{token}' id out of range: {digits[:_MAX_ID_DIGITS + 1]!r}",
            context={"command": token, "digits": len(digits)},
        )
    return int(digits)


def parse_command(line: str) -> Command:
    """Parse one request line into a command.

    Raises ProtocolParseError for unknown tokens and malformed payloads.
    """
    text = line.rstrip("\n").rstrip("\r")
    token, sep, rest = text.partition(FIELD_SEPARATOR)
    token = token.strip()
    payload = rest if sep else None

    if token in ("num", "list"):
        if payload is not None:
            raise ProtocolParseError(
                f"'{token}' takes no payload", context={"command": token}
            )
        return Count() if token == "num" else List()
    if token == "del":
        return DeleteOne(_parse_id(token, payload))
    if token == "dels":
        return DeleteSimilar(_parse_id(token, payload))
    if token == "saw":
        return MarkSeen(_parse_id(token, payload))
    if token == "dela":
        if payload is None:
            raise ProtocolParseError("'dela' requires an application name", context={"command": token})
        return DeleteApps(payload.strip())
    raise ProtocolParseError(f"Unknown command: {text[:64]!r}", context={"command": token})


def format_command(command: Command) -> str:
    """Render a command as a request line (newline included)."""
    if isinstance(command, Count):
        body = "num"
    elif isinstance(command, List):
        body = "list"
    elif isinstance(command, DeleteOne):
        body = f"del{FIELD_SEPARATOR}{command.id}"
    elif isinstance(command, DeleteSimilar):
        body = f"dels{FIELD_SEPARATOR}{command.id}"
    elif isinstance(command, DeleteApps):
        body = f"dela{FIELD_SEPARATOR}{command.app_name}"
    elif isinstance(command, MarkSeen):
        body = f"saw{FIELD_SEPARATOR}{command.id}"
    else:
        raise TypeError(f"Unsupported command: {command!r}")
    return body + "\n"


def execute_command(command: Command, store: NotificationStore) -> Optional[bytes]:
    """Run a command against the store and return the response payload, if any."""
    if isinstance(command, Count):
        return str(store.count()).encode("utf-8")
    if isinstance(command, List):
        payload = [item.to_dict() for item in store.items()]
        return json.dumps(payload).encode("utf-8")
    if isinstance(command, DeleteOne):
        store.delete(command.id)
        return None
    if isinstance(command, DeleteSimilar):
        _delete_similar(store, command.id)
        return None
    if isinstance(command, DeleteApps):
        store.delete_from_app(command.app_name)
        return None
    if isinstance(command, MarkSeen):
        store.set_urgency(command.id, Urgency.NORMAL)
        return None
    raise TypeError(f"Unsupported command: {command!r}")


def _delete_similar(store: NotificationStore, notification_id: int) -> None:
    source = next((item for item in store.items() if item.id == notification_id), None)
    if source is None:
        logger.debug("dels: no notification with id %s", notification_id)
        return
    if not source.application:
        logger.debug("dels: notification %s has no application", notification_id)
        return
    store.delete_from_app(source.application)
