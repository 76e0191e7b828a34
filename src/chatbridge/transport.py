"""
Transport Contract

The protocol engine that owns the real-time socket is an external
collaborator. This module describes the shape the connection manager relies
on: a factory that opens a session from stored credentials, and a session
that publishes lifecycle and message events and can send and close.
"""

from typing import Any, Callable, Dict, Protocol

# Events published by a transport session
CONNECTION_UPDATE = "connection.update"  # payload: ConnectionUpdate
CREDENTIALS_UPDATE = "creds.update"  # payload: credentials update dict
MESSAGES_UPSERT = "messages.upsert"  # payload: {"messages": [...], "type": ...}

SESSION_EVENTS = (CONNECTION_UPDATE, CREDENTIALS_UPDATE, MESSAGES_UPSERT)


class TransportSession(Protocol):
    """A live session created by a Transport."""

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        ...

    def off(self, event: str, handler: Callable[..., Any]) -> None:
        ...

    async def send(self, recipient: str, payload: Dict[str, Any]) -> Any:
        """Deliver a native content payload and return the acknowledgment."""
        ...

    async def close_socket(self) -> None:
        """Close the socket without invalidating the credentials."""
        ...


class Transport(Protocol):
    """Factory for transport sessions."""

    async def create_session(
        self, credentials: Dict[str, Any]
    ) -> TransportSession:
        ...
