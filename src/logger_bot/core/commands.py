"""Command matching for the logger command set."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

# Leading "<@U123ABC>" mention token, as Slack renders it in message text
_MENTION_PREFIX = re.compile(r"^\s*<@[A-Z0-9]+(?:\|[^>]*)?>\s*")


class CommandKind(Enum):
    """Commands understood by the bot."""

    PICK = "pick"
    LIST = "list"
    HELP = "help"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    argument: str = ""


def strip_mention(text: str) -> str:
    """Remove a leading user mention from ``text``."""
    return _MENTION_PREFIX.sub("", text, count=1)


def match_command(text: str, trigger: str) -> Command | None:
    """Match message text against the command set.

    ``<trigger>`` alone picks a logger; ``<trigger> list`` and
    ``<trigger> help`` are prefix matches so trailing words are allowed.

    Returns:
        The matched command, or None for unrelated text.
    """
    stripped = text.strip()
    if stripped == trigger:
        return Command(CommandKind.PICK)

    head, _, rest = stripped.partition(" ")
    if head != trigger:
        return None

    word, _, argument = rest.strip().partition(" ")
    if word == "list":
        return Command(CommandKind.LIST, argument.strip())
    if word == "help":
        return Command(CommandKind.HELP, argument.strip())
    return None


def help_text(trigger: str) -> str:
    """Return the usage text for the command set."""
    return "\n".join(
        [
            "*logger-bot commands*",
            f"`{trigger}`: pick today's logger at random from the roster",
            f"`{trigger} list`: show the roster",
            f"`{trigger} help`: show this help",
        ]
    )


def format_member(member: str) -> str:
    """Render a roster entry; Slack user ids become mentions."""
    if re.fullmatch(r"[UW][A-Z0-9]{2,}", member):
        return f"<@{member}>"
    return member


def roster_text(members: list[str]) -> str:
    """Return the roster listing."""
    if not members:
        return "The roster is empty."
    lines = [f"*Roster* ({len(members)})"]
    lines.extend(f"• {format_member(m)}" for m in members)
    return "\n".join(lines)
