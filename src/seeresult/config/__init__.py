"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    Config,
    MonitoringConfig,
    RateLimitConfig,
    ServerConfig,
    UpstreamConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "Config",
    "MonitoringConfig",
    "RateLimitConfig",
    "ServerConfig",
    "UpstreamConfig",
    "find_config_file",
    "load_config",
]
