"""
Error Types

Exceptions raised or emitted by the chatbridge client. Operation errors
(sending without a session, unsupported calls, bad configuration) are raised
to the caller; disconnect and reconnect errors are delivered through the
client's ``error`` event.
"""

from typing import Optional


class ChatBridgeError(Exception):
    """Base error for chatbridge failures."""


class NotConnectedError(ChatBridgeError, ConnectionError):
    """An operation needed an active session but none exists."""


class UnsupportedOperationError(ChatBridgeError, NotImplementedError):
    """The operation is not available on this backend."""


class ConfigurationError(ChatBridgeError, ValueError):
    """Client configuration is missing or inconsistent."""


class TransportError(ChatBridgeError):
    """The transport failed to carry out a request."""


class DisconnectError(ChatBridgeError):
    """
    A session ended with a disconnect worth reporting.

    Attributes:
        status_code: Status code reported by the transport, if any
        fatal: True when no reconnect will be attempted
    """

    fatal = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionRejectedError(DisconnectError):
    """The remote endpoint permanently rejected the session."""

    fatal = True


class TransientDisconnectError(DisconnectError):
    """The session dropped and a reconnect has been scheduled."""


class ReconnectFailedError(ChatBridgeError):
    """A scheduled reconnect attempt raised."""

    fatal = False

    def __init__(
        self,
        message: str,
        attempt: int = 1,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.attempt = attempt
        self.__cause__ = cause
