"""
Bridge Transport

A Transport implementation that drives an external protocol engine over a
WebSocket. The engine ("bridge") owns pairing, encryption and framing of the
messaging protocol; this module only exchanges JSON frames with it and
turns them into transport session events.

Architecture:
    - One WebSocket per session, opened through an injectable factory
    - A reader task parses incoming frames and resolves send acknowledgments
    - An emitter task delivers session events to handlers in arrival order,
      so a handler may await send() without blocking the reader
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Callable, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import TransportError
from .events import EventEmitter, Handler
from .schemas import (
    BridgeEvent,
    CloseSessionRequest,
    ConnectionUpdate,
    DisconnectEvent,
    SendMessageFrame,
    StartSessionRequest,
)
from .state import ConnectionState, DisconnectReason
from .transport import CONNECTION_UPDATE, SESSION_EVENTS

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 30.0  # seconds to wait for a send acknowledgment

SEND_ACK = "send.ack"
SEND_ERROR = "send.error"


class BridgeSession:
    """
    Transport session backed by a bridge WebSocket.

    Attributes:
        websocket: The underlying WebSocket connection
    """

    def __init__(self, websocket: Any, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.websocket = websocket
        self._send_timeout = send_timeout
        self._events = EventEmitter()
        self._pending: Dict[str, asyncio.Future] = {}
        # (event, payload) pairs waiting for the emitter; None stops it
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._reader: Optional[asyncio.Task] = None
        self._emitter: Optional[asyncio.Task] = None
        self._closing = False

    @property
    def closed(self) -> bool:
        return self._closing

    def on(self, event: str, handler: Handler) -> None:
        self._events.on(event, handler)

    def off(self, event: str, handler: Handler) -> None:
        self._events.off(event, handler)

    async def start(self, credentials: Dict[str, Any]) -> None:
        """
        Ask the bridge to open a session and start reading its frames.

        Events are delivered from a later event loop iteration, so
        handlers attached right after this call see every event.
        """
        await self.websocket.send(StartSessionRequest(credentials=credentials).to_json())
        self._reader = asyncio.create_task(self._read_loop())
        self._emitter = asyncio.create_task(self._emit_loop())

    async def send(self, recipient: str, payload: Dict[str, Any]) -> Any:
        """
        Send a native content payload and wait for the bridge's ack.

        Raises:
            TransportError: If the session is closed, the bridge reports an
                            error, or no acknowledgment arrives in time
        """
        if self._closing:
            raise TransportError("Bridge session is closed")

        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        frame = SendMessageFrame(id=request_id, jid=recipient, content=payload)
        try:
            await self.websocket.send(frame.to_json())
            return await asyncio.wait_for(future, self._send_timeout)
        except asyncio.TimeoutError:
            raise TransportError(
                f"Timed out waiting for acknowledgment of {request_id}"
            )
        except ConnectionClosed as e:
            raise TransportError(f"Bridge connection closed: {e}")
        finally:
            self._pending.pop(request_id, None)

    async def close_socket(self) -> None:
        """Close the bridge connection; the bridge keeps the credentials."""
        if self._closing:
            return
        self._closing = True
        try:
            await self.websocket.send(CloseSessionRequest().to_json())
        except ConnectionClosed:
            logger.debug("Bridge connection already closed")
        await self.websocket.close()

        reader = self._reader
        if reader is not None:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._inbox.put_nowait(None)
        self._fail_pending("Bridge session closed")

    async def _read_loop(self) -> None:
        reason: Optional[str] = None
        try:
            async for raw in self.websocket:
                await self._dispatch(raw)
        except ConnectionClosed as e:
            reason = str(e)

        self._fail_pending("Bridge connection lost")
        if not self._closing:
            self._closing = True
            logger.warning("Bridge connection dropped: %s", reason or "closed")
            update = ConnectionUpdate(
                connection=ConnectionState.CLOSE.value,
                last_disconnect=DisconnectEvent(
                    status_code=int(DisconnectReason.CONNECTION_CLOSED),
                    error_message=reason or "Bridge connection closed",
                ),
            )
            self._inbox.put_nowait((CONNECTION_UPDATE, update))
        self._inbox.put_nowait(None)

    async def _emit_loop(self) -> None:
        while True:
            item = await self._inbox.get()
            if item is None:
                return
            event, payload = item
            await self._events.emit(event, payload)

    async def _dispatch(self, raw: Any) -> None:
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("frame is not an object")
            frame = BridgeEvent.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.error("Malformed bridge frame: %s", e)
            return

        if frame.event in (SEND_ACK, SEND_ERROR):
            self._resolve(frame)
        elif frame.event == CONNECTION_UPDATE:
            update = ConnectionUpdate.from_dict(frame.data or {})
            self._inbox.put_nowait((CONNECTION_UPDATE, update))
            if update.connection == ConnectionState.CLOSE.value:
                # The engine ended this session; a reconnect opens a new one
                self._closing = True
                await self.websocket.close()
        elif frame.event in SESSION_EVENTS:
            self._inbox.put_nowait((frame.event, frame.data or {}))
        else:
            logger.debug("Unhandled bridge event: %s", frame.event)

    def _resolve(self, frame: BridgeEvent) -> None:
        future = self._pending.get(frame.id or "")
        if future is None or future.done():
            logger.debug("Acknowledgment for unknown request %s", frame.id)
            return
        if frame.event == SEND_ACK:
            future.set_result(frame.data)
        else:
            error = frame.data.get("error") if isinstance(frame.data, dict) else frame.data
            future.set_exception(TransportError(f"Send failed: {error}"))

    def _fail_pending(self, message: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(TransportError(message))
        self._pending.clear()


class BridgeTransport:
    """
    Transport factory that opens one bridge WebSocket per session.

    Attributes:
        url: WebSocket URL of the bridge
    """

    def __init__(
        self,
        url: str,
        websocket_factory: Optional[Callable] = None,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        """
        Initialize the bridge transport.

        Args:
            url: WebSocket URL of the bridge
            websocket_factory: Optional factory for creating WebSocket
                               connections (for dependency injection/testing)
            send_timeout: Seconds to wait for a send acknowledgment
        """
        self.url = url
        self._websocket_factory = websocket_factory or websockets.connect
        self._send_timeout = send_timeout

    async def create_session(self, credentials: Dict[str, Any]) -> BridgeSession:
        """
        Connect to the bridge and start a session.

        Raises:
            TransportError: If the bridge cannot be reached
        """
        logger.info("Connecting to bridge at %s", self.url)
        try:
            websocket = await self._websocket_factory(self.url)
        except (OSError, WebSocketException) as e:
            raise TransportError(f"Could not connect to {self.url}: {e}")

        session = BridgeSession(websocket, send_timeout=self._send_timeout)
        try:
            await session.start(credentials)
        except ConnectionClosed as e:
            raise TransportError(f"Bridge closed before the session started: {e}")
        return session
