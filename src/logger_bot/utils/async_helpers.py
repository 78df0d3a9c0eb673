"""Error types and async plumbing shared by the bot.

- ``BotError`` and its subclasses
- tenacity retry controllers and the reconnect backoff schedule
- per-channel token buckets for reply pacing
- ``with_timeout`` for bounded awaits
"""

from __future__ import annotations

import asyncio
import builtins
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from logger_bot.models.results import ConnectionUrlError

log = structlog.get_logger()

T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class BotError(Exception):
    """Base exception for all bot errors."""


class BootstrapError(BotError):
    """The realtime connection URL could not be obtained.

    Attributes:
        error: The classified failure (a ``ConnectionUrlError``).
    """

    def __init__(self, error: ConnectionUrlError) -> None:
        super().__init__(f"Failed to open realtime connection: {error}")
        self.error = error


class DecodeError(BotError):
    """A realtime frame could not be decoded.

    Attributes:
        raw: The original frame text, kept for diagnostics.
        reason: Short description of what failed.
    """

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(f"Failed to decode frame: {reason}")
        self.raw = raw
        self.reason = reason


class SessionError(BotError):
    """Realtime session failure."""


class SessionConnectError(SessionError):
    """The realtime connection could not be established."""


class TimeoutError(BotError):
    """Operation timed out."""


# =============================================================================
# Retry
# =============================================================================


def _before_retry_sleep(retry_state: RetryCallState) -> None:
    if retry_state.outcome is None:
        return
    error = retry_state.outcome.exception()
    log.warning(
        "retrying_operation",
        attempt=retry_state.attempt_number,
        error_type=type(error).__name__,
        error=str(error),
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def create_retry(
    retry_if: Callable[[BaseException], bool],
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
) -> AsyncRetrying:
    """Build an async retry controller.

    Waits grow exponentially from ``min_wait`` up to ``max_wait``. Errors for
    which ``retry_if`` is false, and the last error once attempts run out,
    are re-raised unchanged.

    Usage:
        retrying = create_retry(lambda e: isinstance(e, httpx.NetworkError))
        result = await retrying(fetch, url)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception(retry_if),
        before_sleep=_before_retry_sleep,
        reraise=True,
    )


def backoff_delay(attempt: int, initial: float, maximum: float) -> float:
    """Return the exponential backoff delay for a 1-based attempt number."""
    if attempt <= 0 or initial <= 0:
        return 0.0
    return float(min(maximum, initial * (2 ** (attempt - 1))))


# =============================================================================
# Reply pacing
# =============================================================================


@dataclass
class _Bucket:
    tokens: float
    updated: float = field(default_factory=time.monotonic)


class ChannelRateLimiter:
    """One token bucket per channel.

    Each channel refills at ``per_channel_rate`` tokens per second up to
    ``per_channel_capacity``. A busy channel never delays another one.

    Example:
        limiter = ChannelRateLimiter(per_channel_rate=1)

        await limiter.acquire("C123")
        await post_reply()
    """

    def __init__(self, per_channel_rate: float, per_channel_capacity: float | None = None) -> None:
        self._rate = per_channel_rate
        self._capacity = per_channel_capacity if per_channel_capacity is not None else per_channel_rate
        self._buckets: dict[str, _Bucket] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _refill(self, bucket: _Bucket) -> None:
        now = time.monotonic()
        bucket.tokens = min(self._capacity, bucket.tokens + (now - bucket.updated) * self._rate)
        bucket.updated = now

    async def acquire(self, channel: str, tokens: float = 1.0) -> None:
        """Take ``tokens`` from the channel's bucket, sleeping until they exist.

        Raises:
            ValueError: If more tokens are requested than the bucket holds.
        """
        if tokens > self._capacity:
            raise ValueError(f"Cannot acquire {tokens} tokens; capacity is {self._capacity}")

        bucket = self._buckets.setdefault(channel, _Bucket(self._capacity))
        async with self._locks.setdefault(channel, asyncio.Lock()):
            self._refill(bucket)
            if bucket.tokens < tokens:
                wait = (tokens - bucket.tokens) / self._rate
                log.debug("reply_rate_limited", channel=channel, wait=wait)
                await asyncio.sleep(wait)
                self._refill(bucket)
            bucket.tokens -= tokens


# =============================================================================
# Timeout Utilities
# =============================================================================


async def with_timeout(
    coro: Awaitable[T],
    timeout: float,
    error_message: str | None = None,
) -> T:
    """Await ``coro`` for at most ``timeout`` seconds.

    Raises:
        TimeoutError: The package's own ``TimeoutError`` when time runs out.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except builtins.TimeoutError as e:
        log.warning("operation_timeout", timeout=timeout)
        raise TimeoutError(error_message or f"Operation timed out after {timeout}s") from e
