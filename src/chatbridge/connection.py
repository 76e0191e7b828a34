"""
Connection Manager

This module owns the transport session and its lifecycle. It reacts to the
session's events, classifies disconnects, schedules reconnects and re-emits
everything as backend-agnostic events.

Architecture:
    - One transport session at a time, replaced on every connect()
    - A generation counter tags each session; handlers and reconnect tasks
      from an older generation are ignored
    - At most one reconnect task is pending at any time

Events emitted on ``manager.events``:
    qr          raw pairing code (str)
    connection  ConnectionState after every phase change
    messages    list of native message records, unfiltered
    error       DisconnectError or ReconnectFailedError
"""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .credentials import CredentialStore
from .errors import (
    ConnectionRejectedError,
    ReconnectFailedError,
    TransientDisconnectError,
)
from .events import EventEmitter
from .schemas import ConnectionUpdate, DisconnectEvent
from .state import (
    ConnectionState,
    DisconnectOutcome,
    DisconnectReason,
    ReconnectPolicy,
    classify_disconnect,
)
from .transport import (
    CONNECTION_UPDATE,
    CREDENTIALS_UPDATE,
    MESSAGES_UPSERT,
    Transport,
    TransportSession,
)


class ConnectionManager:
    """
    Lifecycle state machine for a single transport session.

    Attributes:
        events: Emitter for qr, connection, messages and error events
        policy: Reconnect delays and retry rules
    """

    def __init__(
        self,
        transport: Transport,
        credential_store: CredentialStore,
        *,
        policy: Optional[ReconnectPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the connection manager.

        Args:
            transport: Factory for transport sessions
            credential_store: Source and sink of session credentials
            policy: Reconnect policy (defaults to 1s/3s delays)
            sleep: Coroutine used to wait before reconnecting
            logger: Logger for lifecycle diagnostics
        """
        self._transport = transport
        self._credential_store = credential_store
        self.policy = policy or ReconnectPolicy()
        self._sleep = sleep
        self._logger = logger or logging.getLogger(__name__)
        self.events = EventEmitter()

        self._session: Optional[TransportSession] = None
        self._status = ConnectionState.CLOSE
        self._generation = 0
        self._handlers: Dict[str, Callable[..., Any]] = {}
        self._reconnect_task: Optional[asyncio.Task] = None

    @property
    def session(self) -> Optional[TransportSession]:
        """The active transport session, or None."""
        return self._session

    @property
    def status(self) -> ConnectionState:
        return self._status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def reconnecting(self) -> bool:
        """True while a reconnect is waiting for its delay to elapse."""
        task = self._reconnect_task
        return task is not None and not task.done()

    async def connect(self) -> Optional[TransportSession]:
        """
        Open a new transport session and attach handlers to it.

        Handlers of the previous session are removed first. Returns as soon
        as the handlers are attached; the "open" phase arrives later as an
        event.

        Returns:
            The new session, or None if disconnect() was called while the
            session was being created

        Raises:
            Exception: Whatever the credential store or transport raised
        """
        self._detach()
        self._session = None
        self._generation += 1
        generation = self._generation

        self._logger.info("Opening transport session (generation %d)", generation)
        credentials = await self._credential_store.load()
        session = await self._transport.create_session(credentials)

        if generation != self._generation:
            self._logger.info(
                "Session %d superseded while opening, closing it", generation
            )
            await session.close_socket()
            return None

        self._session = session
        self._attach(session, generation)
        return session

    async def disconnect(self) -> None:
        """
        Close the session gracefully, keeping credentials for later.

        Any pending reconnect is cancelled and can no longer open a session.
        """
        self._generation += 1
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

        session = self._session
        if session is None:
            self._status = ConnectionState.CLOSE
            return

        self._detach()
        try:
            await session.close_socket()
        finally:
            self._session = None
            self._status = ConnectionState.CLOSE
            self._logger.info("Disconnected transport session")

    async def wait_for_reconnect(self) -> None:
        """Wait until no reconnect is pending, including follow-up retries."""
        while True:
            task = self._reconnect_task
            if task is None or task.done():
                return
            await asyncio.wait({task})

    def _attach(self, session: TransportSession, generation: int) -> None:
        self._handlers = {
            CONNECTION_UPDATE: functools.partial(
                self._on_connection_update, generation
            ),
            CREDENTIALS_UPDATE: functools.partial(
                self._on_credentials_update, generation
            ),
            MESSAGES_UPSERT: functools.partial(
                self._on_messages_upsert, generation
            ),
        }
        for event, handler in self._handlers.items():
            session.on(event, handler)

    def _detach(self) -> None:
        if self._session is not None:
            for event, handler in self._handlers.items():
                self._session.off(event, handler)
        self._handlers = {}

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            self._logger.debug("Ignoring event from stale session %d", generation)
            return True
        return False

    async def _on_connection_update(self, generation: int, update: Any) -> None:
        if self._is_stale(generation):
            return
        if isinstance(update, dict):
            update = ConnectionUpdate.from_dict(update)

        if update.qr:
            await self.events.emit("qr", update.qr)

        if not update.connection:
            return
        try:
            state = ConnectionState(update.connection)
        except ValueError:
            self._logger.warning("Unknown connection phase: %s", update.connection)
            return

        self._status = state
        self._logger.info("Connection state: %s", state.value)
        await self.events.emit("connection", state)

        if state is ConnectionState.CLOSE:
            await self._handle_close(update.last_disconnect, generation)

    async def _on_credentials_update(self, generation: int, update: Any) -> None:
        if self._is_stale(generation):
            return
        try:
            await self._credential_store.save(update)
        except Exception as e:
            self._logger.error("Failed to save credentials: %s", e)
            raise

    async def _on_messages_upsert(self, generation: int, batch: Any) -> None:
        if self._is_stale(generation):
            return
        if isinstance(batch, dict):
            messages: List[Any] = list(batch.get("messages") or [])
        else:
            messages = list(batch or [])
        await self.events.emit("messages", messages)

    async def _handle_close(
        self, disconnect: Optional[DisconnectEvent], generation: int
    ) -> None:
        # A connection handler may have stopped or replaced the session
        if self._is_stale(generation):
            return
        disconnect = disconnect or DisconnectEvent()
        status_code = disconnect.status_code
        outcome = classify_disconnect(status_code)

        if outcome is DisconnectOutcome.PERMANENT_REJECTION:
            self._logger.error(
                "Remote endpoint rejected the connection (%s); "
                "the client or protocol version may be outdated",
                status_code,
            )
            await self.events.emit(
                "error",
                ConnectionRejectedError(
                    f"Connection rejected ({status_code}); not reconnecting",
                    status_code,
                ),
            )
            return

        if outcome is DisconnectOutcome.TERMINAL_LOGOUT:
            self._logger.info("Session logged out, not reconnecting")
            return

        if outcome is DisconnectOutcome.EXPECTED_TIMEOUT:
            self._logger.info("QR code timed out, requesting a new one")
        elif disconnect.has_error:
            self._logger.warning(
                "Connection error (%s): %s",
                DisconnectReason.describe(status_code),
                disconnect.error_message,
            )
            await self.events.emit(
                "error",
                TransientDisconnectError(
                    f"Connection error: {disconnect.error_message}",
                    status_code,
                ),
            )

        self._schedule_reconnect(self.policy.delay_for(outcome), generation)

    def _schedule_reconnect(
        self, delay: float, generation: int, attempt: int = 1
    ) -> None:
        if self.reconnecting:
            self._logger.warning("Reconnect already pending, ignoring close")
            return
        if generation != self._generation:
            return
        self._logger.info("Reconnecting in %.1f seconds...", delay)
        self._reconnect_task = asyncio.create_task(
            self._reconnect(delay, generation, attempt)
        )

    async def _reconnect(self, delay: float, generation: int, attempt: int) -> None:
        await self._sleep(delay)
        if generation != self._generation:
            self._logger.info("Discarding reconnect for stale session %d", generation)
            return

        # Cleared before connecting so the new session may schedule its own
        self._reconnect_task = None
        try:
            await self.connect()
        except Exception as e:
            self._logger.error("Reconnection failed: %s", e)
            await self.events.emit(
                "error",
                ReconnectFailedError(
                    f"Reconnection failed: {e}", attempt, cause=e
                ),
            )
            if (
                self.policy.retry_failed_connect
                and attempt <= self.policy.max_connect_retries
            ):
                self._schedule_reconnect(
                    self.policy.standard_delay, self._generation, attempt + 1
                )
