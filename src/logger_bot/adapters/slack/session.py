"""Realtime Socket Mode session.

One ``RealtimeSession`` owns one WebSocket for its whole life:

    connecting -> open -> closed

``closed`` is terminal. Whether to bootstrap a new URL and open a fresh
session is the caller's decision.

Every ``events_api`` envelope is acknowledged before its event is handed to
the event handler, so a failing or slow handler can never cost an ack.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from logger_bot.config.schema import ConnectionConfig
from logger_bot.core.decoder import decode
from logger_bot.models.protocol import Disconnect, EventEnvelope, Hello
from logger_bot.utils.async_helpers import DecodeError, SessionConnectError
from logger_bot.utils.logging import LogEventNames
from logger_bot.utils.security import redact_url

log = structlog.get_logger()


class WebSocketConnection(Protocol):
    """The subset of a websockets client connection the session uses."""

    async def recv(self) -> str | bytes: ...

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


Connector = Callable[..., AbstractAsyncContextManager[WebSocketConnection]]
EventHandler = Callable[[EventEnvelope], Awaitable[None]]


class SessionState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class CloseReason(StrEnum):
    """Why an open session ended."""

    DISCONNECT = "disconnect"
    TRANSPORT_CLOSED = "transport_closed"
    TRANSPORT_ERROR = "transport_error"
    ACK_FAILED = "ack_failed"
    STOPPED = "stopped"


@dataclass
class SessionStats:
    envelopes_received: int = 0
    acks_sent: int = 0
    decode_errors: int = 0
    handler_errors: int = 0


@dataclass(frozen=True)
class SessionOutcome:
    """How a session ended."""

    reason: CloseReason
    detail: str = ""
    stats: SessionStats = field(default_factory=SessionStats)


class RealtimeSession:
    """Drive one realtime connection until it closes.

    Example:
        session = RealtimeSession(url, handler, config.connection)
        outcome = await session.run()
        log.info("closed", reason=outcome.reason)
    """

    def __init__(
        self,
        url: str,
        on_event: EventHandler,
        config: ConnectionConfig | None = None,
        connector: Connector | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            url: One-time realtime URL from the bootstrap call
            on_event: Awaited for every envelope, after its ack is written
            config: Timeouts; defaults apply when omitted
            connector: ``websockets.connect`` compatible factory
        """
        self._url = url
        self._on_event = on_event
        self._config = config or ConnectionConfig()
        self._connector: Connector = connector or websockets.connect
        self._state = SessionState.CONNECTING
        self._ws: WebSocketConnection | None = None
        self._write_lock = asyncio.Lock()
        self._stop_requested = False
        self._stats = SessionStats()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def stats(self) -> SessionStats:
        return self._stats

    async def run(self) -> SessionOutcome:
        """Connect and run the receive loop until the session closes.

        Returns:
            The close reason. Transport failures while open are reported
            here, not raised.

        Raises:
            SessionConnectError: If the connection cannot be established.
            RuntimeError: If the session was already run.
        """
        if self._state is not SessionState.CONNECTING:
            raise RuntimeError(f"Session cannot run from state {self._state}")

        safe_url = redact_url(self._url)
        log.info(LogEventNames.SESSION_CONNECTING, url=safe_url)

        try:
            async with self._connect() as ws:
                self._ws = ws
                self._state = SessionState.OPEN
                log.info(LogEventNames.SESSION_OPEN, url=safe_url)
                outcome = await self._receive_loop(ws)
        except _ConnectFailed as e:
            self._state = SessionState.CLOSED
            log.error(LogEventNames.SESSION_CONNECT_FAILED, url=safe_url, error=str(e.cause))
            raise SessionConnectError(f"Failed to connect: {e.cause}") from e.cause
        except ConnectionClosed as e:
            # Raised by the context manager's close handshake
            outcome = SessionOutcome(CloseReason.TRANSPORT_CLOSED, str(e), self._stats)
        finally:
            self._ws = None
            self._state = SessionState.CLOSED

        log.info(
            LogEventNames.SESSION_CLOSED,
            reason=outcome.reason.value,
            detail=outcome.detail,
            envelopes=self._stats.envelopes_received,
            acks=self._stats.acks_sent,
            decode_errors=self._stats.decode_errors,
        )
        return outcome

    async def stop(self) -> None:
        """Close the socket from outside the receive loop."""
        self._stop_requested = True
        ws = self._ws
        if ws is not None:
            await ws.close(code=1000, reason="client shutdown")

    async def send_text(self, text: str) -> None:
        """Write one text frame. Only one write is in flight at a time."""
        if self._ws is None or self._state is not SessionState.OPEN:
            raise ConnectionError("Session is not open")
        async with self._write_lock:
            await self._ws.send(text)

    def _connect(self) -> AbstractAsyncContextManager[WebSocketConnection]:
        return _GuardedConnect(
            lambda: self._connector(
                self._url,
                open_timeout=self._config.open_timeout,
                ping_interval=self._config.ping_interval,
                ping_timeout=self._config.ping_timeout,
                close_timeout=self._config.close_timeout,
            )
        )

    async def _receive_loop(self, ws: WebSocketConnection) -> SessionOutcome:
        if self._stop_requested:
            await ws.close(code=1000, reason="client shutdown")
            return SessionOutcome(CloseReason.STOPPED, "stopped before open", self._stats)

        while True:
            try:
                frame = await ws.recv()
            except ConnectionClosed as e:
                reason = CloseReason.STOPPED if self._stop_requested else CloseReason.TRANSPORT_CLOSED
                return SessionOutcome(reason, str(e), self._stats)
            except OSError as e:
                return SessionOutcome(CloseReason.TRANSPORT_ERROR, str(e), self._stats)

            if isinstance(frame, bytes):
                log.debug(LogEventNames.BINARY_FRAME_IGNORED, size=len(frame))
                continue

            try:
                message = decode(frame)
            except DecodeError as e:
                self._stats.decode_errors += 1
                log.warning(LogEventNames.FRAME_DECODE_ERROR, reason=e.reason, frame=e.raw[:500])
                continue

            if isinstance(message, Hello):
                log.info(
                    LogEventNames.HELLO_RECEIVED,
                    num_connections=message.num_connections,
                    app_id=message.connection_info.app_id,
                    host=message.debug_info.host if message.debug_info else None,
                )
            elif isinstance(message, Disconnect):
                log.info(LogEventNames.DISCONNECT_RECEIVED, reason=message.reason)
                return SessionOutcome(CloseReason.DISCONNECT, message.reason, self._stats)
            else:
                outcome = await self._handle_envelope(message)
                if outcome is not None:
                    return outcome

    async def _handle_envelope(self, envelope: EventEnvelope) -> SessionOutcome | None:
        self._stats.envelopes_received += 1
        log.debug(
            LogEventNames.ENVELOPE_RECEIVED,
            envelope_id=envelope.envelope_id,
            event_type=envelope.event.type,
            retry_attempt=envelope.retry_attempt,
        )

        try:
            await self.send_text(envelope.ack().to_json())
        except (ConnectionClosed, OSError) as e:
            log.error(LogEventNames.ACK_FAILED, envelope_id=envelope.envelope_id, error=str(e))
            return SessionOutcome(CloseReason.ACK_FAILED, str(e), self._stats)

        self._stats.acks_sent += 1
        log.debug(LogEventNames.ACK_SENT, envelope_id=envelope.envelope_id)

        try:
            await self._on_event(envelope)
        except Exception as e:
            self._stats.handler_errors += 1
            log.exception(LogEventNames.DISPATCH_ERROR, envelope_id=envelope.envelope_id, error=str(e))
        return None


class _ConnectFailed(Exception):
    def __init__(self, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.cause = cause


class _GuardedConnect:
    """Wrap a connect context manager so that only failures to *establish*
    the connection become ``_ConnectFailed``."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[WebSocketConnection]]) -> None:
        self._factory = factory
        self._inner: AbstractAsyncContextManager[WebSocketConnection] | None = None

    async def __aenter__(self) -> WebSocketConnection:
        try:
            self._inner = self._factory()
            return await self._inner.__aenter__()
        except (OSError, InvalidHandshake, InvalidURI, asyncio.TimeoutError) as e:
            raise _ConnectFailed(e) from e

    async def __aexit__(self, *exc_info: Any) -> bool | None:
        if self._inner is None:
            return None
        return await self._inner.__aexit__(*exc_info)
