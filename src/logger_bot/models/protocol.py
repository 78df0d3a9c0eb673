"""Wire models for the Socket Mode realtime protocol.

Top-level frames are a tagged union on ``type`` (``hello``, ``disconnect``,
``events_api``) and are decoded strictly. The application event nested in an
``events_api`` envelope is a second tagged union on ``event.type``; any kind
this bot does not know decodes to ``UnknownEvent`` instead of failing the
whole envelope.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class _Frame(BaseModel):
    model_config = ConfigDict(frozen=True)


# =============================================================================
# Application events
# =============================================================================


class MessageEvent(_Frame):
    """A message posted in a channel, group or DM the bot can see."""

    type: Literal["message"] = "message"
    channel: str
    ts: str
    text: str = ""
    user: str = ""
    channel_type: str = ""
    team: str = ""
    event_ts: str | None = None
    client_msg_id: str | None = None
    bot_id: str | None = None
    subtype: str | None = None
    thread_ts: str | None = None


class AppMentionEvent(_Frame):
    """A message that mentions the bot."""

    type: Literal["app_mention"] = "app_mention"
    channel: str
    ts: str
    text: str = ""
    user: str = ""
    team: str = ""
    event_ts: str | None = None
    bot_id: str | None = None
    thread_ts: str | None = None


class UnknownEvent(_Frame):
    """Placeholder for event kinds this bot does not handle."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str = ""


KNOWN_EVENT_TYPES = frozenset({"message", "app_mention"})


def _event_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if isinstance(kind, str) and kind in KNOWN_EVENT_TYPES:
        return kind
    return "unknown"


AppEvent = Annotated[
    Union[
        Annotated[MessageEvent, Tag("message")],
        Annotated[AppMentionEvent, Tag("app_mention")],
        Annotated[UnknownEvent, Tag("unknown")],
    ],
    Discriminator(_event_kind),
]


# =============================================================================
# Envelope payload
# =============================================================================


class Authorization(_Frame):
    """An installation the event is delivered on behalf of."""

    enterprise_id: str | None = None
    team_id: str | None = None
    user_id: str = ""
    is_bot: bool = False
    is_enterprise_install: bool = False


class EventsApiPayload(_Frame):
    """The Events API callback wrapped by an ``events_api`` envelope."""

    event: AppEvent
    event_id: str
    event_time: int
    team_id: str = ""
    api_app_id: str = ""
    token: str = ""
    type: str = "event_callback"
    authorizations: list[Authorization] = []
    is_ext_shared_channel: bool = False
    event_context: str = ""


# =============================================================================
# Top-level frames
# =============================================================================


class DebugInfo(_Frame):
    host: str = ""
    build_number: int | None = None
    approximate_connection_time: int | None = None


class ConnectionInfo(_Frame):
    app_id: str


class Hello(_Frame):
    """Sent once the server has accepted the connection."""

    type: Literal["hello"] = "hello"
    num_connections: int
    connection_info: ConnectionInfo
    debug_info: DebugInfo | None = None


class Disconnect(_Frame):
    """Server notice that the current socket is about to be torn down."""

    type: Literal["disconnect"] = "disconnect"
    reason: str
    debug_info: DebugInfo | None = None


class EventEnvelope(_Frame):
    """An Events API delivery; must be acknowledged by ``envelope_id``."""

    type: Literal["events_api"] = "events_api"
    envelope_id: str = Field(min_length=1)
    payload: EventsApiPayload
    accepts_response_payload: bool = False
    retry_attempt: int = 0
    retry_reason: str = ""

    @property
    def event(self) -> MessageEvent | AppMentionEvent | UnknownEvent:
        """The application event carried by this envelope."""
        return self.payload.event

    def ack(self, payload: Any = None) -> Acknowledgement:
        """Build the acknowledgement for this envelope."""
        return build_ack(self, payload)


ProtocolMessage = Annotated[
    Hello | Disconnect | EventEnvelope,
    Field(discriminator="type"),
]


# =============================================================================
# Acknowledgement
# =============================================================================


class Acknowledgement(_Frame):
    """Reply frame confirming receipt of an envelope.

    Both keys are always serialized; an absent payload is ``null``.
    """

    envelope_id: str
    payload: Any = None

    def to_json(self) -> str:
        """Render the wire frame, e.g. ``{"envelope_id":"E1","payload":null}``."""
        return self.model_dump_json()


def build_ack(envelope: EventEnvelope, payload: Any = None) -> Acknowledgement:
    """Return the acknowledgement for ``envelope`` carrying ``payload`` unchanged."""
    return Acknowledgement(envelope_id=envelope.envelope_id, payload=payload)
