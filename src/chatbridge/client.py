"""
Unified Messaging Client

This module provides the backend-agnostic client contract and its
socket-session variant. Callers subscribe to events and send messages
without knowing which backend carries them.

Events:
    qr          QRCode each time the transport requests pairing
    connection  ConnectionState on every phase change
    ready       no payload; once per transition to OPEN
    message     UnifiedMessage per adapted inbound message
    error       DisconnectError or ReconnectFailedError

Usage:
    client = SocketClient(SocketClientConfig(auth_dir="./auth"), transport)
    client.on("message", handle_message)
    await client.start()
    await client.send_message(OutboundRequest.text(jid, "hello"))
"""

import abc
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from .adapter import MessageAdapter
from .config import SocketClientConfig
from .connection import ConnectionManager
from .credentials import CredentialStore, JsonFileCredentialStore
from .errors import NotConnectedError, UnsupportedOperationError
from .events import EventEmitter, Handler
from .qr import QRRenderer, TextQRRenderer
from .schemas import OutboundRequest
from .state import ConnectionState, ReconnectPolicy
from .transport import Transport

CLIENT_EVENTS = ("qr", "connection", "ready", "message", "error")


class MessagingClient(abc.ABC):
    """
    Contract shared by every messaging backend.

    Operations a backend cannot support raise UnsupportedOperationError.
    """

    def __init__(self):
        self._events = EventEmitter()

    def on(self, event: str, handler: Handler) -> None:
        """Register a handler for one of the client events."""
        if event not in CLIENT_EVENTS:
            raise ValueError(f"Unknown event: {event}")
        self._events.on(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self._events.off(event, handler)

    @property
    @abc.abstractmethod
    def backend(self) -> str:
        """Name of the backend, e.g. "baileys"."""

    @abc.abstractmethod
    async def start(self) -> None:
        ...

    @abc.abstractmethod
    async def stop(self) -> None:
        ...

    @abc.abstractmethod
    async def send_message(self, request: OutboundRequest) -> Any:
        ...

    @abc.abstractmethod
    def get_connection_status(self) -> ConnectionState:
        ...

    async def verify_webhook(self, token: str) -> bool:
        raise UnsupportedOperationError(
            f"verify_webhook is not supported by the {self.backend} backend"
        )


class SocketClient(MessagingClient):
    """
    Client for the persistent-socket backend.

    Composes a ConnectionManager with a MessageAdapter and translates the
    manager's events into the client events.
    """

    def __init__(
        self,
        config: SocketClientConfig,
        transport: Transport,
        *,
        credential_store: Optional[CredentialStore] = None,
        qr_renderer: Optional[QRRenderer] = None,
        adapter: Optional[MessageAdapter] = None,
        policy: Optional[ReconnectPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the socket client.

        Args:
            config: Client configuration
            transport: Factory for transport sessions
            credential_store: Credential store (defaults to a JSON file in
                              config.auth_dir)
            qr_renderer: Renderer for pairing codes
            adapter: Message adapter
            policy: Reconnect policy
            sleep: Coroutine used to wait before reconnecting
            logger: Logger for diagnostics
        """
        super().__init__()
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._qr_renderer = qr_renderer or TextQRRenderer()
        self._adapter = adapter or MessageAdapter()
        self.connection = ConnectionManager(
            transport,
            credential_store or JsonFileCredentialStore(config.auth_dir),
            policy=policy,
            sleep=sleep,
            logger=self._logger,
        )
        self._setup_event_forwarding()

    @property
    def backend(self) -> str:
        return "baileys"

    def _setup_event_forwarding(self) -> None:
        events = self.connection.events
        events.on("qr", self._forward_qr)
        events.on("connection", self._forward_connection)
        events.on("messages", self._forward_messages)
        events.on("error", self._forward_error)

    async def _forward_qr(self, code: str) -> None:
        qr = self._qr_renderer.render(code)
        if self.config.print_qr_in_terminal and qr.terminal:
            print(f"\n{qr.terminal}\n")
        await self._events.emit("qr", qr)

    async def _forward_connection(self, status: ConnectionState) -> None:
        await self._events.emit("connection", status)
        if status is ConnectionState.OPEN:
            await self._events.emit("ready")

    async def _forward_messages(self, messages: List[Any]) -> None:
        for native in messages:
            if not isinstance(native, dict) or not native.get("message"):
                continue
            key = native.get("key") or {}
            if key.get("fromMe"):
                continue

            unified = self._adapter.to_unified(native)
            if unified is None:
                continue
            await self._events.emit("message", unified)

    async def _forward_error(self, error: Exception) -> None:
        await self._events.emit("error", error)

    async def start(self) -> None:
        """Open the session; returns before the connection is open."""
        await self.connection.connect()

    async def stop(self) -> None:
        """Close the session, keeping credentials for the next start()."""
        await self.connection.disconnect()

    async def send_message(self, request: OutboundRequest) -> Any:
        """
        Send a message through the active session.

        Args:
            request: Recipient and content

        Returns:
            The transport's acknowledgment

        Raises:
            NotConnectedError: If no session is active
            ValueError: If the content cannot be represented natively
        """
        session = self.connection.session
        if session is None:
            raise NotConnectedError("Not connected to the messaging backend")

        payload = self._adapter.to_native(request)
        self._logger.debug("Sending %s message to %s", request.content.type.value, request.to)
        return await session.send(request.to, payload)

    def get_connection_status(self) -> ConnectionState:
        return self.connection.status
