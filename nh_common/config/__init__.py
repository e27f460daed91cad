"""Configuration models and environment helpers."""

from nh_common.config.env import (
    env_bool,
    env_path,
    env_positive_int,
    env_str,
    parse_bool_env,
    parse_int_env,
)
from nh_common.config.settings import (
    DaemonConfig,
    Geometry,
    GlobalConfig,
    HubConfig,
    UrgencyConfig,
    load_config,
    resolve_config_path,
)

__all__ = [
    "DaemonConfig",
    "Geometry",
    "GlobalConfig",
    "HubConfig",
    "UrgencyConfig",
    "load_config",
    "env_bool",
    "env_path",
    "env_positive_int",
    "env_str",
    "parse_bool_env",
    "parse_int_env",
    "resolve_config_path",
]
