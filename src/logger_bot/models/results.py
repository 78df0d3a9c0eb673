"""Outcome values for the bootstrap and reply API calls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from logger_bot.utils.async_helpers import BootstrapError


class ConnectionUrlErrorKind(Enum):
    """Why a realtime connection URL could not be obtained."""

    TRANSPORT = "transport"
    REMOTE = "remote"
    MISSING_URL = "missing_url"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConnectionUrlError:
    """A classified bootstrap failure."""

    kind: ConnectionUrlErrorKind
    detail: str = ""

    @property
    def retryable(self) -> bool:
        """Only network-level failures are worth retrying."""
        return self.kind is ConnectionUrlErrorKind.TRANSPORT

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind.value}: {self.detail}"
        return self.kind.value


@dataclass(frozen=True)
class ConnectionUrlResult:
    """Outcome of one bootstrap exchange: a URL or an error, never both."""

    url: str | None = None
    error: ConnectionUrlError | None = None

    def __post_init__(self) -> None:
        if (self.url is None) == (self.error is None):
            raise ValueError("ConnectionUrlResult needs exactly one of url or error")

    @classmethod
    def success(cls, url: str) -> ConnectionUrlResult:
        return cls(url=url)

    @classmethod
    def failure(cls, kind: ConnectionUrlErrorKind, detail: str = "") -> ConnectionUrlResult:
        return cls(error=ConnectionUrlError(kind, detail))

    @property
    def ok(self) -> bool:
        return self.url is not None

    def unwrap(self) -> str:
        """Return the URL.

        Raises:
            BootstrapError: If the exchange failed.
        """
        if self.error is not None:
            raise BootstrapError(self.error)
        if self.url is None:
            raise ValueError("ConnectionUrlResult needs exactly one of url or error")
        return self.url


class PostErrorKind(Enum):
    """Classified ``chat.postMessage`` failures."""

    CHANNEL_NOT_FOUND = "channel_not_found"
    NOT_IN_CHANNEL = "not_in_channel"
    OTHER = "other"

    @classmethod
    def from_code(cls, code: str | None) -> PostErrorKind:
        for kind in cls:
            if kind.value == code and kind is not cls.OTHER:
                return kind
        return cls.OTHER


@dataclass(frozen=True)
class PostError:
    kind: PostErrorKind
    detail: str = ""


@dataclass(frozen=True)
class PostResult:
    """Outcome of one reply: the posted message, or a classified error."""

    channel: str | None = None
    ts: str | None = None
    text: str | None = None
    error: PostError | None = None

    @classmethod
    def success(cls, channel: str, ts: str, text: str) -> PostResult:
        return cls(channel=channel, ts=ts, text=text)

    @classmethod
    def failure(cls, kind: PostErrorKind, detail: str = "") -> PostResult:
        return cls(error=PostError(kind, detail))

    @property
    def ok(self) -> bool:
        return self.error is None
