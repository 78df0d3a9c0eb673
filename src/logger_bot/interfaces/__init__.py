"""Protocol definitions for pluggable adapters."""

from .chat import MessagePoster

__all__ = ["MessagePoster"]
