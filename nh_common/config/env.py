"""Helpers for reading ``NH_*`` environment overrides."""

from __future__ import annotations

import os
from pathlib import Path

_TRUE_VALUES = {"1", "true", "yes", "on"}


def parse_bool_env(value: str | None) -> bool | None:
    """Return None when unset, else True for 1/true/yes/on (case-insensitive)."""
    if value is None:
        return None
    return value.strip().lower() in _TRUE_VALUES


def parse_int_env(value: str | None) -> int | None:
    """Return the integer value, or None when unset or not a number."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def env_bool(name: str) -> bool | None:
    return parse_bool_env(os.environ.get(name))


def env_positive_int(name: str) -> int | None:
    """Read a strictly positive integer; anything else counts as unset."""
    value = parse_int_env(os.environ.get(name))
    if value is None or value <= 0:
        return None
    return value


def env_str(name: str) -> str | None:
    """Read a non-empty string; blank values count as unset."""
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value


def env_path(name: str) -> Path | None:
    value = env_str(name)
    return Path(value).expanduser() if value is not None else None
