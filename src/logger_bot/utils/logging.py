"""Structured logging for logger-bot.

structlog renders every entry as JSON or as colored console output, tags it
with the service name and version, and redacts credentials before
rendering. Standard-library loggers share the same handlers.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from enum import StrEnum
from pathlib import Path
from typing import Any

import structlog

from logger_bot.utils.security import SecretRedactor


class LogFormat(StrEnum):
    JSON = "json"
    CONSOLE = "console"


class LogLevel(StrEnum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


SERVICE_NAME = "logger-bot"

_redactor = SecretRedactor()


def sanitize_log_value(value: Any) -> Any:
    """Redact credentials inside strings, dicts, lists and tuples."""
    if isinstance(value, str):
        return _redactor.redact(value)
    if isinstance(value, dict):
        return {k: sanitize_log_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(sanitize_log_value(v) for v in value)
    return value


def secret_sanitizer(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor: redact credentials from every field."""
    for key, value in event_dict.items():
        event_dict[key] = sanitize_log_value(value)
    return event_dict


def add_service_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Structlog processor: tag entries with ``service`` and ``version``."""
    event_dict["service"] = SERVICE_NAME
    try:
        from logger_bot._version import __version__
    except RuntimeError:
        # Neither installed nor run from a source checkout
        return event_dict
    event_dict["version"] = __version__
    return event_dict


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    log_format: LogFormat | str = LogFormat.JSON,
    file_path: Path | str | None = None,
    file_enabled: bool = False,
) -> None:
    """Configure structlog and the root logger.

    Args:
        level: Minimum level, case-insensitive
        log_format: ``json`` for aggregation or ``console`` for development
        file_path: Log file, created with its parent directory if needed
        file_enabled: Whether to also write to ``file_path``
    """
    level = LogLevel(str(level).upper())
    log_format = LogFormat(str(log_format).lower())
    numeric_level = getattr(logging, level.value)

    renderer: Any
    if log_format is LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_service_info,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            secret_sanitizer,
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None
    if file_enabled and file_path:
        path = Path(file_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path))
        except OSError as e:
            file_error = e

    logging.basicConfig(format="%(message)s", level=numeric_level, handlers=handlers, force=True)
    if file_error is not None:
        # Console output only
        logging.getLogger(__name__).warning("Could not open log file %s: %s", file_path, file_error)

    # websockets logs every frame at DEBUG, including the ticketed URL
    logging.getLogger("websockets").setLevel(max(numeric_level, logging.INFO))


def bind_context(**kwargs: Any) -> None:
    """Bind values to every log entry of the current task.

    Example:
        bind_context(envelope_id="E1")
        log.info("ack_sent")  # Includes envelope_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


class LogEventNames:
    """Standard log event names for consistency."""

    # Bot lifecycle
    BOT_STARTING = "bot_starting"
    BOT_STARTED = "bot_started"
    BOT_STOPPING = "bot_stopping"
    BOT_STOPPED = "bot_stopped"

    # Bootstrap
    BOOTSTRAP_START = "bootstrap_start"
    BOOTSTRAP_COMPLETE = "bootstrap_complete"
    BOOTSTRAP_FAILED = "bootstrap_failed"

    # Session
    SESSION_CONNECTING = "session_connecting"
    SESSION_OPEN = "session_open"
    SESSION_CLOSED = "session_closed"
    SESSION_CONNECT_FAILED = "session_connect_failed"
    SESSION_RECONNECT_SCHEDULED = "session_reconnect_scheduled"

    # Protocol
    HELLO_RECEIVED = "hello_received"
    DISCONNECT_RECEIVED = "disconnect_received"
    ENVELOPE_RECEIVED = "envelope_received"
    ACK_SENT = "ack_sent"
    ACK_FAILED = "ack_failed"
    FRAME_DECODE_ERROR = "frame_decode_error"
    BINARY_FRAME_IGNORED = "binary_frame_ignored"

    # Dispatch
    EVENT_DISPATCHED = "event_dispatched"
    EVENT_REDELIVERED = "event_redelivered"
    EVENT_IGNORED = "event_ignored"
    DISPATCH_ERROR = "dispatch_error"
    COMMAND_MATCHED = "command_matched"

    # Replies
    REPLY_SENT = "reply_sent"
    REPLY_FAILED = "reply_failed"
