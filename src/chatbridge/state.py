"""
Connection State and Disconnect Classification

This module defines the connection phases reported by the transport, the
named disconnect reasons it can report, and the pure classification that
decides whether a closed session is retried and how long to wait first.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

# Reconnect delays in seconds
SHORT_RECONNECT_DELAY = 1.0  # after a pairing code expired
STANDARD_RECONNECT_DELAY = 3.0  # after any other retryable disconnect
MAX_CONNECT_RETRIES = 5  # only used when retry_failed_connect is enabled


class ConnectionState(Enum):
    """Phase of the transport session."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSE = "close"


class DisconnectReason(IntEnum):
    """Status codes the transport attaches to a closed session."""

    CONNECTION_LOST = 408
    CONNECTION_CLOSED = 428
    CONNECTION_REPLACED = 440
    LOGGED_OUT = 401
    FORBIDDEN = 403
    CONNECTION_REJECTED = 405
    BAD_SESSION = 500
    UNAVAILABLE_SERVICE = 503
    QR_TIMEOUT = 515

    @classmethod
    def describe(cls, status_code: Optional[int]) -> str:
        """Return a readable label for a status code."""
        if status_code is None:
            return "unknown"
        try:
            return cls(status_code).name.lower()
        except ValueError:
            return str(status_code)


class DisconnectOutcome(Enum):
    """Decision taken for a closed session."""

    TERMINAL_LOGOUT = "terminal_logout"
    PERMANENT_REJECTION = "permanent_rejection"
    EXPECTED_TIMEOUT = "expected_timeout"
    TRANSIENT = "transient"

    @property
    def should_reconnect(self) -> bool:
        return self in (
            DisconnectOutcome.EXPECTED_TIMEOUT,
            DisconnectOutcome.TRANSIENT,
        )


def classify_disconnect(status_code: Optional[int]) -> DisconnectOutcome:
    """
    Map a disconnect status code to an outcome.

    Only three codes are special: a logout is terminal and expected, a
    rejection is terminal and reported, and a pairing-code timeout is
    retried quickly. Every other code, including a missing one, is treated
    as a transient failure.

    Args:
        status_code: Status code from the disconnect event, or None

    Returns:
        DisconnectOutcome for the code
    """
    if status_code == DisconnectReason.LOGGED_OUT:
        return DisconnectOutcome.TERMINAL_LOGOUT
    if status_code == DisconnectReason.CONNECTION_REJECTED:
        return DisconnectOutcome.PERMANENT_REJECTION
    if status_code == DisconnectReason.QR_TIMEOUT:
        return DisconnectOutcome.EXPECTED_TIMEOUT
    return DisconnectOutcome.TRANSIENT


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Delays and retry rules applied after a disconnect.

    Attributes:
        short_delay: Seconds to wait after a pairing-code timeout
        standard_delay: Seconds to wait after any other retryable disconnect
        retry_failed_connect: Schedule another attempt when a reconnect
                              itself raises, instead of waiting for the
                              next lifecycle event
        max_connect_retries: Upper bound on those extra attempts
    """

    short_delay: float = SHORT_RECONNECT_DELAY
    standard_delay: float = STANDARD_RECONNECT_DELAY
    retry_failed_connect: bool = False
    max_connect_retries: int = MAX_CONNECT_RETRIES

    def delay_for(self, outcome: DisconnectOutcome) -> Optional[float]:
        """Return the reconnect delay for an outcome, or None for no retry."""
        if outcome is DisconnectOutcome.EXPECTED_TIMEOUT:
            return self.short_delay
        if outcome is DisconnectOutcome.TRANSIENT:
            return self.standard_delay
        return None
