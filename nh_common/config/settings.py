"""Hub configuration (TOML file, validated with pydantic)."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nh_common.config.env import env_bool, env_path, env_positive_int, env_str
from nh_common.errors import ConfigurationError

DEFAULT_CONFIG_NAME = "notifyhub.toml"
DEFAULT_SOCKET_PATH = "/tmp/rofi_notification_daemon"
DEFAULT_EVENT_FIFO = "/tmp/notifyhub.fifo"

_GEOMETRY_RE = re.compile(r"^(\d+)x(\d+)\+(\d+)\+(\d+)$")
_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")
_U32_MAX = 2**32 - 1


class Geometry(BaseModel):
    """Window geometry, written as ``<width>x<height>+<x>+<y>``."""

    width: int = Field(ge=0, le=_U32_MAX)
    height: int = Field(ge=0, le=_U32_MAX)
    x: int = Field(ge=0, le=_U32_MAX)
    y: int = Field(ge=0, le=_U32_MAX)

    @classmethod
    def parse(cls, value: str) -> "Geometry":
        match = _GEOMETRY_RE.match(value.strip())
        if not match:
            raise ValueError(f"geometry must look like WxH+X+Y, got: {value!r}")
        width, height, x, y = (int(group) for group in match.groups())
        return cls(width=width, height=height, x=x, y=y)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}+{self.x}+{self.y}"


class GlobalConfig(BaseModel):
    """Display settings shared by every urgency level."""

    geometry: Geometry = Field(
        default_factory=lambda: Geometry(width=300, height=60, x=0, y=0),
        description="Geometry of the notification window",
    )
    font: str = Field(default="Monospace 10", description="Text font")

    model_config = ConfigDict(extra="forbid")

    @field_validator("geometry", mode="before")
    @classmethod
    def _parse_geometry(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Geometry.parse(value)
        return value


class UrgencyConfig(BaseModel):
    """Colours and timeout applied to one urgency level."""

    background: str = Field(default="#222222", description="Background colour (#rrggbb)")
    foreground: str = Field(default="#eeeeee", description="Foreground colour (#rrggbb)")
    timeout: int = Field(default=10, ge=0, description="Display timeout in seconds")

    model_config = ConfigDict(extra="forbid")

    @field_validator("background", "foreground")
    @classmethod
    def _normalize_color(cls, value: str) -> str:
        match = _COLOR_RE.match(value.strip())
        if not match:
            raise ValueError(f"colour must be a hex string like #1e1e2e, got: {value!r}")
        return f"#{match.group(1).lower()}"


class DaemonConfig(BaseModel):
    """Runtime settings for the hub process."""

    socket_path: Path = Field(default=Path(DEFAULT_SOCKET_PATH), description="Rendezvous socket path")
    event_fifo: Path = Field(default=Path(DEFAULT_EVENT_FIFO), description="Named pipe carrying upstream events")
    poll_timeout_ms: int = Field(default=1000, gt=0, description="Upstream poll timeout in milliseconds")
    per_connection_threads: bool = Field(
        default=False, description="Serve each client connection on its own thread"
    )

    model_config = ConfigDict(extra="forbid")

    @property
    def poll_timeout(self) -> float:
        return self.poll_timeout_ms / 1000.0


class HubConfig(BaseModel):
    """Top-level configuration file model."""

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    urgency_low: UrgencyConfig = Field(
        default_factory=lambda: UrgencyConfig(background="#222222", foreground="#888888", timeout=5)
    )
    urgency_normal: UrgencyConfig = Field(default_factory=UrgencyConfig)
    urgency_critical: UrgencyConfig = Field(
        default_factory=lambda: UrgencyConfig(background="#900000", foreground="#ffffff", timeout=0)
    )
    daemon: DaemonConfig = Field(default_factory=DaemonConfig)

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def get_urgency_config(self, urgency: int) -> UrgencyConfig:
        """Return the settings for an urgency level (0=low, 1=normal, 2=critical)."""
        level = int(urgency)
        if level == 0:
            return self.urgency_low
        if level == 2:
            return self.urgency_critical
        return self.urgency_normal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HubConfig":
        return cls.model_validate(data)

    @classmethod
    def load(cls, filepath: Path) -> "HubConfig":
        with open(filepath, "rb") as handle:
            return cls.from_dict(tomllib.load(handle))


def resolve_config_path(explicit: Optional[Path] = None) -> Optional[Path]:
    """Return the configuration file to read, or None to use built-in defaults.

    Priority: explicit path > NH_CONFIG > $XDG_CONFIG_HOME/notifyhub/notifyhub.toml.
    An explicit or NH_CONFIG path is returned even when it does not exist so the
    loader can report it.
    """
    if explicit is not None:
        return explicit
    configured = env_path("NH_CONFIG")
    if configured is not None:
        return configured
    xdg_root = env_str("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    candidate = Path(xdg_root) / "notifyhub" / DEFAULT_CONFIG_NAME
    return candidate if candidate.exists() else None


def _apply_env_overrides(config: HubConfig) -> HubConfig:
    updates: Dict[str, Any] = {}
    socket_path = env_path("NH_SOCKET_PATH")
    if socket_path is not None:
        updates["socket_path"] = socket_path
    event_fifo = env_path("NH_EVENT_FIFO")
    if event_fifo is not None:
        updates["event_fifo"] = event_fifo
    poll_timeout_ms = env_positive_int("NH_POLL_TIMEOUT_MS")
    if poll_timeout_ms is not None:
        updates["poll_timeout_ms"] = poll_timeout_ms
    threaded = env_bool("NH_THREADED")
    if threaded is not None:
        updates["per_connection_threads"] = threaded
    if not updates:
        return config
    daemon = config.daemon.model_copy(update=updates)
    return config.model_copy(update={"daemon": daemon})


def load_config(explicit: Optional[Path] = None) -> HubConfig:
    """Load, validate and env-override the hub configuration."""
    path = resolve_config_path(explicit)
    if path is None:
        return _apply_env_overrides(HubConfig())
    try:
        config = HubConfig.load(path)
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot read configuration file {path}", context={"path": path}, cause=exc
        ) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(
            f"Invalid TOML in {path}: {exc}", context={"path": path}, cause=exc
        ) from exc
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration in {path}: {exc.error_count()} error(s)",
            context={"path": path, "errors": [err["msg"] for err in exc.errors()]},
            cause=exc,
        ) from exc
    return _apply_env_overrides(config)
