"""Data models and transfer objects."""

from .protocol import (
    Acknowledgement,
    AppEvent,
    AppMentionEvent,
    Authorization,
    ConnectionInfo,
    DebugInfo,
    Disconnect,
    EventEnvelope,
    EventsApiPayload,
    Hello,
    MessageEvent,
    ProtocolMessage,
    UnknownEvent,
    build_ack,
)
from .results import (
    ConnectionUrlError,
    ConnectionUrlErrorKind,
    ConnectionUrlResult,
    PostError,
    PostErrorKind,
    PostResult,
)

__all__ = [
    # Protocol frames
    "Hello",
    "Disconnect",
    "EventEnvelope",
    "EventsApiPayload",
    "Authorization",
    "ConnectionInfo",
    "DebugInfo",
    "ProtocolMessage",
    # Application events
    "AppEvent",
    "MessageEvent",
    "AppMentionEvent",
    "UnknownEvent",
    # Acknowledgement
    "Acknowledgement",
    "build_ack",
    # Results
    "ConnectionUrlError",
    "ConnectionUrlErrorKind",
    "ConnectionUrlResult",
    "PostError",
    "PostErrorKind",
    "PostResult",
]
