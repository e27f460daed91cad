"""Notification record and urgency levels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping

U32_MAX = 2**32 - 1


class Urgency(IntEnum):
    """Urgency levels as carried by the freedesktop urgency hint."""

    LOW = 0
    NORMAL = 1
    CRITICAL = 2

    @classmethod
    def from_value(cls, value: Any) -> "Urgency":
        """Coerce an int or a level name; unknown values fall back to NORMAL."""
        if isinstance(value, Urgency):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            if not name.isdigit():
                return cls.NORMAL
            value = int(name)
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.NORMAL

    def __str__(self) -> str:
        return self.name.lower()


def _require_u32(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < 0 or value > U32_MAX:
        raise ValueError(f"{name} must fit in 32 bits, got {value}")
    return value


@dataclass
class Notification:
    """A single notification as received from the upstream source.

    Every field is fixed once received except ``urgency``, which clients may
    downgrade through the query protocol.
    """

    id: int
    summary: str = ""
    body: str = ""
    application: str = ""
    icon: str = ""
    urgency: Urgency = Urgency.NORMAL
    actions: List[str] = field(default_factory=list)
    hints: Dict[str, str] = field(default_factory=dict)
    timestamp: int = 0

    def __post_init__(self) -> None:
        _require_u32("id", self.id)
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int) or self.timestamp < 0:
            raise ValueError(f"timestamp must be a non-negative integer, got {self.timestamp!r}")
        self.urgency = Urgency.from_value(self.urgency)

    def copy(self) -> "Notification":
        """Return an independent copy (container fields are cloned)."""
        return Notification(
            id=self.id,
            summary=self.summary,
            body=self.body,
            application=self.application,
            icon=self.icon,
            urgency=self.urgency,
            actions=list(self.actions),
            hints=dict(self.hints),
            timestamp=self.timestamp,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "summary": self.summary,
            "body": self.body,
            "application": self.application,
            "icon": self.icon,
            "urgency": int(self.urgency),
            "actions": list(self.actions),
            "hints": dict(self.hints),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Notification":
        """Build a notification from a decoded JSON object.

        Raises ValueError on missing ids or mistyped fields.
        """
        if "id" not in data:
            raise ValueError("notification is missing 'id'")
        actions = data.get("actions") or []
        hints = data.get("hints") or {}
        if not isinstance(actions, list):
            raise ValueError("'actions' must be a list")
        if not isinstance(hints, Mapping):
            raise ValueError("'hints' must be an object")
        return cls(
            id=data["id"],
            summary=str(data.get("summary", "")),
            body=str(data.get("body", "")),
            application=str(data.get("application", "")),
            icon=str(data.get("icon", "")),
            urgency=Urgency.from_value(data.get("urgency", Urgency.NORMAL)),
            actions=[str(action) for action in actions],
            hints={str(key): str(value) for key, value in hints.items()},
            timestamp=data.get("timestamp", 0),
        )
