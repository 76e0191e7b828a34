"""
Tests for the Bridge Transport

Tests for the WebSocket bridge including:
- Session start frames and event dispatch
- Send acknowledgments and failures
- Local close versus dropped connections
- End-to-end use through the SocketClient
"""

import asyncio
import json

import pytest
from websockets.exceptions import ConnectionClosedError, WebSocketException

from chatbridge import (
    BridgeTransport,
    ConnectionState,
    ConnectionUpdate,
    MemoryCredentialStore,
    OutboundRequest,
    SocketClient,
    SocketClientConfig,
    TransportError,
)
from chatbridge.transport import (
    CONNECTION_UPDATE,
    CREDENTIALS_UPDATE,
    MESSAGES_UPSERT,
)

from conftest import RecordingSleep, settle

JID = "5511977776666@s.whatsapp.net"


class MockWebSocket:
    """Mock WebSocket fed through a queue; None ends iteration."""

    def __init__(self):
        self.sent_messages = []
        self.closed = False
        self.auto_ack = None
        self.send_error = None
        self._incoming = asyncio.Queue()

    async def send(self, message):
        if self.send_error is not None:
            raise self.send_error
        self.sent_messages.append(message)
        frame = json.loads(message)
        if self.auto_ack is not None and frame["type"] == "send":
            self.push(
                {"event": "send.ack", "id": frame["data"]["id"], "data": self.auto_ack}
            )

    async def close(self):
        self.closed = True
        self._incoming.put_nowait(None)

    def push(self, frame):
        self._incoming.put_nowait(json.dumps(frame))

    def push_raw(self, raw):
        self._incoming.put_nowait(raw)

    def drop(self):
        self._incoming.put_nowait(None)

    def fail(self, error):
        """Make the next receive raise error."""
        self._incoming.put_nowait(error)

    def frames(self):
        return [json.loads(message) for message in self.sent_messages]

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is None:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


def make_transport(websocket, urls=None):
    async def factory(url):
        if urls is not None:
            urls.append(url)
        return websocket

    return BridgeTransport("ws://bridge:8765", websocket_factory=factory)


def record(session, event):
    received = []
    session.on(event, received.append)
    return received


# Session Tests


@pytest.mark.asyncio
async def test_create_session_sends_start_frame():
    """Test that the session starts with the stored credentials."""
    websocket = MockWebSocket()
    urls = []
    transport = make_transport(websocket, urls)

    session = await transport.create_session({"me": {"id": JID}})

    assert urls == ["ws://bridge:8765"]
    assert websocket.frames() == [
        {"type": "start", "data": {"credentials": {"me": {"id": JID}}}}
    ]
    await session.close_socket()


@pytest.mark.asyncio
async def test_frames_are_dispatched_to_handlers():
    """Test that bridge events reach the matching session handlers."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    updates = record(session, CONNECTION_UPDATE)
    creds = record(session, CREDENTIALS_UPDATE)
    batches = record(session, MESSAGES_UPSERT)

    websocket.push({"event": "connection.update", "data": {"qr": "ABC123"}})
    websocket.push({"event": "creds.update", "data": {"noiseKey": "n"}})
    websocket.push({"event": "messages.upsert", "data": {"messages": [], "type": "notify"}})
    await settle(lambda: batches)

    assert updates == [ConnectionUpdate(qr="ABC123")]
    assert creds == [{"noiseKey": "n"}]
    assert batches == [{"messages": [], "type": "notify"}]
    await session.close_socket()


@pytest.mark.asyncio
async def test_disconnect_details_are_parsed():
    """Test that a nested error status code is extracted."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    updates = record(session, CONNECTION_UPDATE)

    websocket.push(
        {
            "event": "connection.update",
            "data": {
                "connection": "close",
                "lastDisconnect": {
                    "error": {
                        "message": "Stream Errored (restart required)",
                        "output": {"statusCode": 515},
                    }
                },
            },
        }
    )
    await settle(lambda: updates)

    update = updates[0]
    assert update.connection == "close"
    assert update.last_disconnect.status_code == 515
    assert update.last_disconnect.error_message == "Stream Errored (restart required)"
    await settle(lambda: websocket.closed)
    assert websocket.closed is True
    assert session.closed is True


@pytest.mark.asyncio
async def test_malformed_frames_are_skipped(caplog):
    """Test that bad frames are logged and later frames still arrive."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    creds = record(session, CREDENTIALS_UPDATE)

    websocket.push_raw("{not json")
    websocket.push_raw("[1, 2]")
    websocket.push({"data": {"no": "event"}})
    websocket.push({"event": "creds.update", "data": {"ok": True}})
    await settle(lambda: creds)

    assert creds == [{"ok": True}]
    assert "Malformed bridge frame" in caplog.text
    await session.close_socket()


# Send Tests


@pytest.mark.asyncio
async def test_send_resolves_with_ack():
    """Test that send() returns the acknowledgment payload."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})

    sending = asyncio.create_task(session.send(JID, {"text": "hi"}))
    await settle(lambda: len(websocket.sent_messages) == 2)
    frame = websocket.frames()[1]
    assert frame["type"] == "send"
    assert frame["data"]["jid"] == JID
    assert frame["data"]["content"] == {"text": "hi"}

    websocket.push(
        {"event": "send.ack", "id": frame["data"]["id"], "data": {"key": {"id": "X1"}}}
    )
    ack = await asyncio.wait_for(sending, 1)

    assert ack == {"key": {"id": "X1"}}
    await session.close_socket()


@pytest.mark.asyncio
async def test_send_error_raises_transport_error():
    """Test that a send.error frame fails the pending send."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})

    sending = asyncio.create_task(session.send(JID, {"text": "hi"}))
    await settle(lambda: len(websocket.sent_messages) == 2)
    request_id = websocket.frames()[1]["data"]["id"]
    websocket.push({"event": "send.error", "id": request_id, "data": {"error": "not-authorized"}})

    with pytest.raises(TransportError) as exc_info:
        await asyncio.wait_for(sending, 1)

    assert "not-authorized" in str(exc_info.value)
    await session.close_socket()


@pytest.mark.asyncio
async def test_send_times_out_without_ack():
    """Test that a missing acknowledgment raises TransportError."""
    websocket = MockWebSocket()
    transport = BridgeTransport(
        "ws://bridge", websocket_factory=lambda url: _resolved(websocket), send_timeout=0.01
    )
    session = await transport.create_session({})

    with pytest.raises(TransportError):
        await session.send(JID, {"text": "hi"})

    await session.close_socket()


async def _resolved(value):
    return value


@pytest.mark.asyncio
async def test_send_after_close_fails():
    """Test that a closed session refuses to send."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    await session.close_socket()

    with pytest.raises(TransportError):
        await session.send(JID, {"text": "hi"})


# Close Tests


@pytest.mark.asyncio
async def test_close_socket_is_graceful():
    """Test that a local close sends a close frame and no close event."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    updates = record(session, CONNECTION_UPDATE)

    await session.close_socket()
    await settle()

    assert websocket.closed is True
    assert websocket.frames()[-1] == {"type": "close"}
    assert updates == []


@pytest.mark.asyncio
async def test_dropped_connection_reports_close():
    """Test that losing the socket is reported as a retryable close."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    updates = record(session, CONNECTION_UPDATE)

    websocket.drop()
    await settle(lambda: updates)

    assert updates[0].connection == "close"
    assert updates[0].last_disconnect.status_code == 428


@pytest.mark.asyncio
async def test_connection_closed_while_reading_reports_close():
    """Test that a ConnectionClosed from the library becomes a 428 close."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    updates = record(session, CONNECTION_UPDATE)

    websocket.fail(ConnectionClosedError(None, None))
    await settle(lambda: updates)

    assert len(updates) == 1
    assert updates[0].connection == "close"
    assert updates[0].last_disconnect.status_code == 428
    assert updates[0].last_disconnect.has_error
    assert session.closed is True


@pytest.mark.asyncio
async def test_connection_closed_while_reading_fails_pending_send():
    """Test that an unanswered send fails when the socket is lost."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})

    sending = asyncio.create_task(session.send(JID, {"text": "hi"}))
    await settle(lambda: len(websocket.sent_messages) == 2)
    websocket.fail(ConnectionClosedError(None, None))

    with pytest.raises(TransportError):
        await asyncio.wait_for(sending, 1)


@pytest.mark.asyncio
async def test_connection_closed_while_sending_raises_transport_error():
    """Test that a ConnectionClosed from send() is wrapped in TransportError."""
    websocket = MockWebSocket()
    session = await make_transport(websocket).create_session({})
    websocket.send_error = ConnectionClosedError(None, None)

    with pytest.raises(TransportError):
        await session.send(JID, {"text": "hi"})

    await session.close_socket()
    assert websocket.closed is True


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        OSError("network unreachable"),
        ConnectionRefusedError("refused"),
        WebSocketException("handshake failed"),
    ],
)
async def test_unreachable_bridge_raises_transport_error(error):
    """Test that connection failures are wrapped in TransportError."""

    async def factory(url):
        raise error

    transport = BridgeTransport("ws://bridge:1", websocket_factory=factory)

    with pytest.raises(TransportError) as exc_info:
        await transport.create_session({})

    assert "ws://bridge:1" in str(exc_info.value)

# Client Integration Tests


@pytest.mark.asyncio
async def test_socket_client_over_bridge():
    """Test pairing, ready, inbound messages and sending through a bridge."""
    websocket = MockWebSocket()
    client = SocketClient(
        SocketClientConfig(print_qr_in_terminal=False),
        make_transport(websocket),
        credential_store=MemoryCredentialStore(),
        sleep=RecordingSleep(),
    )
    events = []
    client.on("qr", lambda qr: events.append(("qr", qr.code)))
    client.on("ready", lambda: events.append(("ready", None)))
    client.on("message", lambda message: events.append(("message", message.text)))

    await client.start()
    websocket.push({"event": "connection.update", "data": {"qr": "ABC123"}})
    websocket.push({"event": "connection.update", "data": {"connection": "open"}})
    websocket.push(
        {
            "event": "messages.upsert",
            "data": {
                "type": "notify",
                "messages": [
                    {
                        "key": {"remoteJid": JID, "fromMe": False, "id": "M1"},
                        "message": {"conversation": "bom dia"},
                    }
                ],
            },
        }
    )
    await settle(lambda: len(events) == 3)

    assert events == [("qr", "ABC123"), ("ready", None), ("message", "bom dia")]
    assert client.get_connection_status() is ConnectionState.OPEN

    sending = asyncio.create_task(client.send_message(OutboundRequest.text(JID, "olá")))
    await settle(lambda: len(websocket.sent_messages) == 2)
    request_id = websocket.frames()[1]["data"]["id"]
    websocket.push({"event": "send.ack", "id": request_id, "data": {"status": 1}})
    assert await asyncio.wait_for(sending, 1) == {"status": 1}

    await client.stop()
    assert websocket.closed is True


@pytest.mark.asyncio
async def test_message_handler_can_reply_through_bridge():
    """Test that a message handler awaiting send_message gets its ack."""
    websocket = MockWebSocket()
    websocket.auto_ack = {"ok": 1}
    transport = BridgeTransport(
        "ws://bridge:8765",
        websocket_factory=lambda url: _resolved(websocket),
        send_timeout=0.5,
    )
    client = SocketClient(
        SocketClientConfig(print_qr_in_terminal=False),
        transport,
        credential_store=MemoryCredentialStore(),
        sleep=RecordingSleep(),
    )
    replies = []

    async def reply(message):
        try:
            replies.append(
                await client.send_message(
                    OutboundRequest.text(message.chat_id, "got it")
                )
            )
        except TransportError as e:
            replies.append(e)

    client.on("message", reply)
    await client.start()
    websocket.push(
        {
            "event": "messages.upsert",
            "data": {
                "type": "notify",
                "messages": [
                    {
                        "key": {"remoteJid": JID, "fromMe": False, "id": "M2"},
                        "message": {"conversation": "ping"},
                    }
                ],
            },
        }
    )
    await settle(lambda: replies)

    assert replies == [{"ok": 1}]
    assert websocket.frames()[1]["data"]["content"] == {"text": "got it"}
    await client.stop()
