"""Keep credentials and untrusted chat text out of the logs."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

# Query parameters of the realtime URL that authorize a connection
SENSITIVE_QUERY_PARAMS = frozenset({"ticket", "token"})

SENSITIVE_CONFIG_KEYS = ("token", "key", "secret", "password", "credential")

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")
# Control characters other than tab, newline and carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


class SecretRedactor:
    """Replaces Slack credentials found in free text with a placeholder.

    Covers bot and user tokens (``xox*-``), app-level tokens (``xapp-``),
    ``Bearer`` headers, ``key=value`` style secrets, and the one-time
    ``ticket`` embedded in realtime connection URLs.

    Usage:
        redactor = SecretRedactor()
        safe_text = redactor.redact(potentially_sensitive_text)
    """

    PATTERNS: tuple[re.Pattern[str], ...] = (
        re.compile(r"(?i)(api[_-]?key|secret|token|password|credential)\s*[=:]\s*[\"']?[\w-]{16,}"),
        re.compile(r"xox[baprs]-[\w-]+"),
        re.compile(r"xapp-[\w-]+"),
        re.compile(r"(?i)(?<=[?&]ticket=)[\w-]+"),
        re.compile(r"(?i)bearer\s+[\w.-]+"),
    )

    def __init__(self, placeholder: str = "[REDACTED]") -> None:
        self.placeholder = placeholder

    def redact(self, text: str) -> str:
        for pattern in self.PATTERNS:
            text = pattern.sub(self.placeholder, text)
        return text


def redact_url(url: str, placeholder: str = "[REDACTED]") -> str:
    """Return ``url`` with credential-bearing query parameters masked.

    The realtime URL handed out by the bootstrap call embeds a one-time
    ticket; it must never reach the logs verbatim.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    query = [
        (key, placeholder if key.lower() in SENSITIVE_QUERY_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="[]")))


def sanitize_for_logging(text: str) -> str:
    """Strip terminal escapes and control characters from chat text.

    Message bodies come from arbitrary chat users and must not be able to
    forge log lines or corrupt terminal output.
    """
    return _CONTROL_CHARS.sub("", _ANSI_ESCAPE.sub("", text))


def mask_config_value(key: str, value: str) -> str:
    """Shorten ``value`` to its first and last four characters when ``key``
    names a credential; short credentials are fully masked."""
    if not any(word in key.lower() for word in SENSITIVE_CONFIG_KEYS):
        return value
    if len(value) > 8:
        return f"{value[:4]}...{value[-4:]}"
    return "***"
