"""Post replies through ``chat.postMessage``."""

from __future__ import annotations

import asyncio

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from logger_bot.models.results import PostErrorKind, PostResult
from logger_bot.utils.async_helpers import ChannelRateLimiter

log = structlog.get_logger()


class SlackPoster:
    """Reply client implementing the MessagePoster protocol.

    Remote and network failures are returned as ``PostResult`` failures,
    never raised.

    Example:
        poster = SlackPoster(bot_token="xoxb-...")
        result = await poster.post_message("C123", "hello")
        if not result.ok:
            print(result.error.kind)
    """

    def __init__(
        self,
        bot_token: str,
        api_base_url: str = "https://slack.com/api/",
        timeout: float = 10.0,
        rate: float = 1.0,
        client: AsyncWebClient | None = None,
    ) -> None:
        """Initialize the poster.

        Args:
            bot_token: Bot token (``xoxb-...``)
            api_base_url: Web API base URL
            timeout: Request timeout in seconds
            rate: Posts per second allowed per channel
            client: Optional pre-built Web API client
        """
        self._client = client or AsyncWebClient(
            token=bot_token,
            base_url=api_base_url,
            # Whole seconds; 0 would disable the timeout
            timeout=max(1, round(timeout)),
        )
        self._limiter = ChannelRateLimiter(per_channel_rate=rate, per_channel_capacity=max(rate, 1.0))

    async def post_message(self, channel: str, text: str) -> PostResult:
        """Post ``text`` to ``channel``.

        Args:
            channel: Target channel identifier
            text: Plain text message

        Returns:
            The posted message, or a classified failure.
        """
        await self._limiter.acquire(channel)

        try:
            response = await self._client.chat_postMessage(channel=channel, text=text)
        except SlackApiError as e:
            code = e.response.get("error") if e.response is not None else None
            kind = PostErrorKind.from_code(code)
            return PostResult.failure(kind, code or str(e))
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            return PostResult.failure(PostErrorKind.OTHER, f"{type(e).__name__}: {e}")

        message = response.get("message") or {}
        ts = response.get("ts") or message.get("ts", "")
        log.debug("message_posted", channel=channel, ts=ts)
        return PostResult.success(
            channel=response.get("channel", channel),
            ts=ts,
            text=message.get("text", text),
        )

    async def close(self) -> None:
        """Close the client's HTTP session when one was created."""
        session = getattr(self._client, "session", None)
        if session is not None and not session.closed:
            await session.close()
