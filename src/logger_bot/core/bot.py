"""Main Bot orchestrator that coordinates all components.

This module implements the Bot class that serves as the main entry point
for logger-bot. It:
- Bootstraps realtime connection URLs and runs one session at a time
- Re-bootstraps with bounded backoff when a session closes
- Dispatches acknowledged events with concurrency control
- Handles graceful shutdown on signals (SIGTERM, SIGINT)
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

import structlog
from cachetools import TTLCache

from logger_bot.adapters.slack.session import CloseReason, RealtimeSession, SessionOutcome
from logger_bot.config.schema import BotConfig
from logger_bot.core.dispatcher import DispatchResult, EventDispatcher
from logger_bot.utils.async_helpers import (
    BootstrapError,
    BotError,
    SessionConnectError,
    TimeoutError,
    backoff_delay,
    create_retry,
    with_timeout,
)
from logger_bot.utils.logging import LogEventNames, bind_context, unbind_context

if TYPE_CHECKING:
    from logger_bot.adapters.slack.bootstrap import ConnectionBootstrapper
    from logger_bot.adapters.slack.session import Connector
    from logger_bot.interfaces.chat import MessagePoster
    from logger_bot.models.protocol import EventEnvelope

log = structlog.get_logger()


class StartupError(BotError):
    """The bot cannot obtain a realtime connection and will not retry."""


class Bot:
    """Main orchestrator that coordinates all components.

    Responsibilities:
    - Obtain a realtime URL and run a session on it
    - Decide whether to reconnect after the session closes
    - Run event dispatch off the receive loop, bounded by a semaphore
    - Handle graceful startup and shutdown

    Example:
        bot = Bot(config, bootstrapper, poster)
        await bot.start()  # Blocks until shutdown signal
    """

    DEFAULT_SHUTDOWN_TIMEOUT = 30
    SEEN_EVENTS_MAXSIZE = 1024

    def __init__(
        self,
        config: BotConfig,
        bootstrapper: ConnectionBootstrapper,
        poster: MessagePoster,
        dispatcher: EventDispatcher | None = None,
        connector: Connector | None = None,
    ) -> None:
        """Initialize the Bot.

        Args:
            config: Application configuration
            bootstrapper: Client for the connection-opening endpoint
            poster: Reply client
            dispatcher: Event dispatcher (built from config when omitted)
            connector: WebSocket connect factory passed to each session
        """
        self._config = config
        self._bootstrapper = bootstrapper
        self._poster = poster
        self._dispatcher = dispatcher or EventDispatcher(
            poster,
            config.roster,
            config.slack.default_channel,
        )
        self._connector = connector

        self._semaphore = asyncio.Semaphore(config.runtime.max_concurrent)
        self._active_tasks: set[asyncio.Task[DispatchResult | None]] = set()
        self._seen_events: TTLCache[str, bool] = TTLCache(
            maxsize=self.SEEN_EVENTS_MAXSIZE,
            ttl=config.runtime.redelivery_ttl,
        )

        self._running = False
        self._shutdown_event = asyncio.Event()
        self._session: RealtimeSession | None = None

        self._sessions_opened = 0
        self._events_dispatched = 0
        self._redeliveries_skipped = 0
        self._errors_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Return processing statistics."""
        return {
            "sessions_opened": self._sessions_opened,
            "events_dispatched": self._events_dispatched,
            "redeliveries_skipped": self._redeliveries_skipped,
            "errors_count": self._errors_count,
            "active_tasks": len(self._active_tasks),
        }

    async def start(self, install_signal_handlers: bool = True) -> None:
        """Run sessions until shutdown or until reconnecting is not allowed.

        Raises:
            StartupError: If a connection URL cannot be obtained for a
                reason that retrying will not fix.
        """
        if self._running:
            log.warning("bot_already_running")
            return

        log.info(
            LogEventNames.BOT_STARTING,
            roster_size=len(self._config.roster.members),
            trigger=self._config.roster.trigger,
            reconnect=self._config.reconnect.enabled,
        )

        self._running = True
        self._shutdown_event.clear()
        if install_signal_handlers:
            self._setup_signal_handlers()
        log.info(LogEventNames.BOT_STARTED)

        try:
            await self._run_sessions()
        finally:
            await self._wait_for_tasks()
            await self._cleanup()
            self._running = False
            log.info(LogEventNames.BOT_STOPPED, **self.stats)

    async def stop(self) -> None:
        """Request shutdown and close the current session."""
        if self._shutdown_event.is_set():
            return

        log.info(LogEventNames.BOT_STOPPING, active_tasks=len(self._active_tasks))
        self._shutdown_event.set()

        session = self._session
        if session is not None:
            await session.stop()

    async def handle_envelope(self, envelope: EventEnvelope) -> None:
        """Session callback: the envelope is already acknowledged.

        Dispatch runs as a task so the receive loop can read the next frame.
        An event already seen within ``runtime.redelivery_ttl`` is skipped:
        the platform redelivers envelopes whose ack arrived late.
        """
        event_id = envelope.payload.event_id
        if event_id in self._seen_events:
            self._redeliveries_skipped += 1
            log.info(
                LogEventNames.EVENT_REDELIVERED,
                event_id=event_id,
                envelope_id=envelope.envelope_id,
                retry_attempt=envelope.retry_attempt,
                retry_reason=envelope.retry_reason,
            )
            return
        self._seen_events[event_id] = True

        task = asyncio.create_task(
            self.process_event(envelope),
            name=f"dispatch_{envelope.envelope_id}",
        )
        self._active_tasks.add(task)
        task.add_done_callback(self._active_tasks.discard)

    async def process_event(self, envelope: EventEnvelope) -> DispatchResult | None:
        """Dispatch one event under the concurrency limit and timeout."""
        async with self._semaphore:
            bind_context(envelope_id=envelope.envelope_id)
            try:
                result = await with_timeout(
                    self._dispatcher.dispatch(envelope.event),
                    self._config.runtime.dispatch_timeout,
                )
                self._events_dispatched += 1
                log.debug(LogEventNames.EVENT_DISPATCHED, result=result.value)
                return result
            except TimeoutError as e:
                self._errors_count += 1
                log.warning(LogEventNames.DISPATCH_ERROR, error=str(e))
                return None
            except Exception as e:
                self._errors_count += 1
                log.exception(LogEventNames.DISPATCH_ERROR, error=str(e))
                return None
            finally:
                unbind_context("envelope_id")

    async def _run_sessions(self) -> None:
        reconnect = self._config.reconnect
        failures = 0

        while not self._shutdown_event.is_set():
            url = await self._open_connection_url()
            if self._shutdown_event.is_set():
                break

            if url is None:
                # Bootstrap unreachable; back off like a failed handshake
                outcome = SessionOutcome(CloseReason.TRANSPORT_ERROR, "connection URL unavailable")
                failures += 1
            else:
                outcome, opened = await self._run_session(url)
                failures = 0 if opened else failures + 1

            if self._shutdown_event.is_set() or outcome.reason is CloseReason.STOPPED:
                break
            if not reconnect.enabled:
                log.info("reconnect_disabled", reason=outcome.reason.value)
                break

            # A server-requested disconnect reconnects immediately
            if outcome.reason is CloseReason.DISCONNECT:
                continue

            delay = backoff_delay(max(failures, 1), reconnect.initial_delay, reconnect.max_delay)
            log.info(
                LogEventNames.SESSION_RECONNECT_SCHEDULED,
                reason=outcome.reason.value,
                delay=delay,
                consecutive_failures=failures,
            )
            await self._sleep_unless_shutdown(delay)

    async def _run_session(self, url: str) -> tuple[SessionOutcome, bool]:
        """Run one session on ``url``; the flag tells whether it opened."""
        session = RealtimeSession(
            url,
            self.handle_envelope,
            self._config.connection,
            connector=self._connector,
        )
        self._session = session
        try:
            outcome = await session.run()
        except SessionConnectError as e:
            return SessionOutcome(CloseReason.TRANSPORT_ERROR, str(e)), False
        finally:
            self._session = None

        self._sessions_opened += 1
        return outcome, True

    async def _open_connection_url(self) -> str | None:
        """Bootstrap a URL, retrying transport failures only.

        Returns:
            The realtime URL, or None when transport retries ran out and
            reconnecting is enabled, so the caller backs off and tries again.

        Raises:
            StartupError: If the failure is not retryable, or retries ran
                out with reconnecting disabled.
        """
        reconnect = self._config.reconnect
        retrying = create_retry(
            max_attempts=reconnect.bootstrap_attempts,
            min_wait=reconnect.initial_delay,
            max_wait=reconnect.max_delay,
            retry_if=lambda e: isinstance(e, BootstrapError) and e.error.retryable,
        )

        async def attempt() -> str:
            result = await self._bootstrapper.open(self._config.slack.app_token)
            return result.unwrap()

        try:
            return await retrying(attempt)
        except BootstrapError as e:
            log.error(
                LogEventNames.BOOTSTRAP_FAILED,
                error_kind=e.error.kind.value,
                detail=e.error.detail,
                will_retry=e.error.retryable and reconnect.enabled,
            )
            if e.error.retryable and reconnect.enabled:
                return None
            raise StartupError(f"Cannot open a realtime connection ({e.error})") from e

    async def _sleep_unless_shutdown(self, delay: float) -> None:
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    async def _wait_for_tasks(self) -> None:
        """Wait for in-flight dispatch tasks, cancelling stragglers."""
        if not self._active_tasks:
            return

        log.info("waiting_for_active_tasks", count=len(self._active_tasks))

        done, pending = await asyncio.wait(
            set(self._active_tasks),
            timeout=self.DEFAULT_SHUTDOWN_TIMEOUT,
        )

        if pending:
            log.warning("cancelling_pending_tasks", count=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        log.info("tasks_completed", completed=len(done), cancelled=len(pending))

    async def _cleanup(self) -> None:
        """Release HTTP clients."""
        for name, resource in (("bootstrapper", self._bootstrapper), ("poster", self._poster)):
            try:
                await resource.close()
            except Exception as e:
                log.warning("close_error", resource=name, error=str(e))

    def _setup_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s: asyncio.create_task(self._handle_signal(s)),
                sig,
            )
            log.debug("signal_handler_registered", signal=sig.name)

    async def _handle_signal(self, sig: signal.Signals) -> None:
        log.info("received_signal", signal=sig.name)
        await self.stop()


async def create_bot(config: BotConfig) -> Bot:
    """Factory function to create a Bot with all dependencies.

    Args:
        config: Application configuration

    Returns:
        Configured Bot instance
    """
    from logger_bot.adapters.slack.bootstrap import ConnectionBootstrapper
    from logger_bot.adapters.slack.poster import SlackPoster

    bootstrapper = ConnectionBootstrapper(
        api_base_url=config.slack.api_base_url,
        timeout=config.connection.request_timeout,
    )
    poster = SlackPoster(
        bot_token=config.slack.bot_token,
        api_base_url=config.slack.api_base_url,
        timeout=config.connection.request_timeout,
        rate=config.runtime.post_rate,
    )
    return Bot(config, bootstrapper, poster)
