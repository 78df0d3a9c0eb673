"""Abstract interface for posting replies to the chat platform."""

from typing import Protocol

from ..models.results import PostResult


class MessagePoster(Protocol):
    """Outbound side of the chat platform.

    Implementations must not raise for remote or network failures; they
    report them through ``PostResult`` instead.
    """

    async def post_message(self, channel: str, text: str) -> PostResult:
        """
        Post ``text`` to ``channel``.

        Args:
            channel: Target channel identifier
            text: Plain text message

        Returns:
            The posted message on success, or a classified error
        """
        ...

    async def close(self) -> None:
        """Release any underlying HTTP resources."""
        ...
