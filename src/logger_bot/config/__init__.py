"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    BotConfig,
    ConnectionConfig,
    LoggingConfig,
    ReconnectConfig,
    RosterConfig,
    RuntimeConfig,
    SlackConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "BotConfig",
    # Sections
    "ConnectionConfig",
    "LoggingConfig",
    "ReconnectConfig",
    "RosterConfig",
    "RuntimeConfig",
    "SlackConfig",
]
