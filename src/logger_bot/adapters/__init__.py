"""Concrete implementations of provider interfaces."""

from .slack.bootstrap import ConnectionBootstrapper
from .slack.poster import SlackPoster
from .slack.session import RealtimeSession

__all__ = [
    "ConnectionBootstrapper",
    "RealtimeSession",
    "SlackPoster",
]
