"""
Shared test doubles for the transport, session and reconnect timer.
"""

import asyncio

import pytest

from chatbridge import ConnectionUpdate, DisconnectEvent


class MockSession:
    """Mock transport session that records handlers, sends and closes."""

    def __init__(self, credentials):
        self.credentials = credentials
        self.handlers = {}
        self.sent_messages = []
        self.closed = False
        self.ack = {"key": {"id": "ACK-1"}, "status": "sent"}

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    def off(self, event, handler):
        handlers = self.handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def handler_count(self):
        return sum(len(handlers) for handlers in self.handlers.values())

    async def emit(self, event, payload):
        for handler in list(self.handlers.get(event, [])):
            await handler(payload)

    async def send(self, recipient, payload):
        self.sent_messages.append((recipient, payload))
        return self.ack

    async def close_socket(self):
        self.closed = True


class MockTransport:
    """Mock transport; queued failures are raised by create_session in order."""

    def __init__(self):
        self.sessions = []
        self.failures = []
        self.attempts = 0

    async def create_session(self, credentials):
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        session = MockSession(credentials)
        self.sessions.append(session)
        return session

    @property
    def latest(self):
        return self.sessions[-1]


class RecordingSleep:
    """Reconnect timer that records each delay and returns immediately."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class GatedSleep(RecordingSleep):
    """Reconnect timer that blocks until release() is called."""

    def __init__(self):
        super().__init__()
        self._gate = None

    async def __call__(self, delay):
        self.delays.append(delay)
        if self._gate is None:
            self._gate = asyncio.Event()
        await self._gate.wait()

    def release(self):
        if self._gate is None:
            self._gate = asyncio.Event()
        self._gate.set()


def close_update(status_code=None, error_message=None):
    """Build a "close" connection update."""
    return ConnectionUpdate(
        connection="close",
        last_disconnect=DisconnectEvent(
            status_code=status_code, error_message=error_message
        ),
    )


async def settle(predicate=None, rounds=50):
    """Let pending tasks run until predicate() holds (or for a few rounds)."""
    for _ in range(rounds):
        if predicate is not None and predicate():
            return
        await asyncio.sleep(0)


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def gated_sleep():
    return GatedSleep()
