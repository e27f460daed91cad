"""Shared helpers for notifyhub."""

from nh_common.api import HubConfig, NHError, configure_logging, load_config

__all__ = ["configure_logging", "HubConfig", "load_config", "NHError"]
