"""Route application events to the logger command set.

The dispatcher only sees events whose envelope has already been
acknowledged. It never raises for a failed reply: reply failures are
logged and the event counts as handled.
"""

from __future__ import annotations

import random
import secrets
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from logger_bot.core.commands import (
    Command,
    CommandKind,
    format_member,
    help_text,
    match_command,
    roster_text,
    strip_mention,
)
from logger_bot.models.protocol import AppMentionEvent, MessageEvent
from logger_bot.utils.logging import LogEventNames
from logger_bot.utils.security import sanitize_for_logging

if TYPE_CHECKING:
    from logger_bot.config.schema import RosterConfig
    from logger_bot.interfaces.chat import MessagePoster
    from logger_bot.models.protocol import AppEvent
    from logger_bot.models.results import PostResult

log = structlog.get_logger()


class DispatchResult(Enum):
    """What the dispatcher did with an event."""

    IGNORED = "ignored"
    NO_COMMAND = "no_command"
    REPLIED = "replied"
    REPLY_FAILED = "reply_failed"


class EventDispatcher:
    """Dispatch decoded application events to command handlers.

    Example:
        dispatcher = EventDispatcher(poster, config.roster, config.slack.default_channel)
        await dispatcher.dispatch(envelope.event)
    """

    def __init__(
        self,
        poster: MessagePoster,
        roster: RosterConfig,
        default_channel: str,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            poster: Outbound reply client
            roster: Roster and trigger keyword
            default_channel: Reply channel when an event carries none
            rng: Random source for roster picks; defaults to OS entropy
        """
        self._poster = poster
        self._members = list(roster.members)
        self._trigger = roster.trigger
        self._default_channel = default_channel
        self._rng = rng if rng is not None else secrets.SystemRandom()

    async def dispatch(self, event: AppEvent) -> DispatchResult:
        """Handle one application event."""
        if isinstance(event, MessageEvent):
            if event.bot_id or event.subtype:
                log.debug(LogEventNames.EVENT_IGNORED, event_type=event.type, subtype=event.subtype)
                return DispatchResult.IGNORED
            text = event.text
        elif isinstance(event, AppMentionEvent):
            if event.bot_id:
                return DispatchResult.IGNORED
            text = strip_mention(event.text)
        else:
            log.debug(LogEventNames.EVENT_IGNORED, event_type=event.type)
            return DispatchResult.IGNORED

        command = match_command(text, self._trigger)
        if command is None:
            return DispatchResult.NO_COMMAND

        channel = event.channel or self._default_channel
        log.info(
            LogEventNames.COMMAND_MATCHED,
            command=command.kind.value,
            channel=channel,
            user=event.user,
            text=sanitize_for_logging(text),
        )

        result = await self._poster.post_message(channel, self._reply_for(command))
        return self._report(result, channel)

    def pick(self) -> str | None:
        """Pick one roster member uniformly at random."""
        if not self._members:
            return None
        return self._rng.choice(self._members)

    def _reply_for(self, command: Command) -> str:
        if command.kind is CommandKind.PICK:
            member = self.pick()
            if member is None:
                return "The roster is empty, so nobody can be picked."
            return f"{format_member(member)} is today's logger :memo:"
        if command.kind is CommandKind.LIST:
            return roster_text(self._members)
        return help_text(self._trigger)

    def _report(self, result: PostResult, channel: str) -> DispatchResult:
        error = result.error
        if error is None:
            log.info(LogEventNames.REPLY_SENT, channel=result.channel, ts=result.ts)
            return DispatchResult.REPLIED

        log.warning(
            LogEventNames.REPLY_FAILED,
            channel=channel,
            error_kind=error.kind.value,
            detail=error.detail,
        )
        return DispatchResult.REPLY_FAILED
