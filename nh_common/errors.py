"""Error types shared by the hub daemon and its clients.

Every error carries a JSON-friendly ``context`` so it can be attached to
structured log records as is. ``fatal`` tells the owning thread whether the
failure must stop the whole hub or only the current request/event.
"""

from __future__ import annotations

from pathlib import PurePath
from typing import Any, Mapping, TypeVar

DIAGNOSTIC_PREFIX = "notifyhub"
_MAX_BYTES_IN_CONTEXT = 64


def _context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_context_value(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return repr(bytes(value[:_MAX_BYTES_IN_CONTEXT]))
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {str(key): _context_value(val) for key, val in context.items()}


class NHError(Exception):
    """Base class for hub failures."""

    fatal = False

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.error_type,
            "message": str(self),
            "fatal": self.fatal,
            "context": self.context,
        }


class ConfigurationError(NHError):
    """The configuration file is unreadable or invalid."""

    fatal = True


class ProtocolParseError(NHError):
    """A client request line does not match the wire format."""


class UpstreamEventError(NHError):
    """A single upstream event could not be decoded."""


class BindError(NHError):
    """The rendezvous socket could not be bound or served."""

    fatal = True


class RegistrationError(NHError):
    """The upstream notification source could not be registered."""

    fatal = True


class StorePoisonedError(NHError):
    """A writer failed mid-mutation; the store contents can no longer be trusted."""

    fatal = True


E = TypeVar("E", bound=NHError)


def wrap_error(
    error_cls: type[E],
    message: str,
    *,
    context: Mapping[str, Any] | None = None,
    cause: BaseException | None = None,
) -> E:
    """Build ``error_cls`` around a lower-level exception."""
    return error_cls(message, context=context, cause=cause)


def error_to_payload(error: NHError) -> dict[str, Any]:
    """Fields attached to a log record through ``extra=``."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_fatal": error.fatal,
        "error_context": error.context,
    }


def describe_error(error: BaseException) -> str:
    """One-line diagnostic printed before a non-zero exit."""
    message = str(error) or type(error).__name__
    return f"{DIAGNOSTIC_PREFIX}: {message}"
