"""Utility functions and helpers.

- security: Credential redaction, log hygiene
- async_helpers: Error types, async retry, reply pacing, timeouts
- logging: Structured logging with secret sanitization
"""

from logger_bot.utils.async_helpers import (
    BootstrapError,
    BotError,
    ChannelRateLimiter,
    DecodeError,
    SessionConnectError,
    SessionError,
    create_retry,
    with_timeout,
)
from logger_bot.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    configure_logging,
    unbind_context,
)
from logger_bot.utils.security import SecretRedactor, redact_url

__all__ = [
    "BootstrapError",
    "BotError",
    "ChannelRateLimiter",
    "DecodeError",
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    "SecretRedactor",
    "SessionConnectError",
    "SessionError",
    "bind_context",
    "configure_logging",
    "create_retry",
    "redact_url",
    "unbind_context",
    "with_timeout",
]
