"""Public API surface for nh_common."""

from nh_common.config import DaemonConfig, HubConfig, load_config
from nh_common.errors import (
    BindError,
    ConfigurationError,
    NHError,
    ProtocolParseError,
    RegistrationError,
    StorePoisonedError,
    UpstreamEventError,
)
from nh_common.logging import configure_logging

__all__ = [
    "BindError",
    "ConfigurationError",
    "DaemonConfig",
    "HubConfig",
    "NHError",
    "ProtocolParseError",
    "RegistrationError",
    "StorePoisonedError",
    "UpstreamEventError",
    "configure_logging",
    "load_config",
]
