"""
Connection Schema Definitions

Payloads carried by the transport's ``connection.update`` event.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .base import BaseResponse


def _to_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class DisconnectEvent(BaseResponse):
    """
    Why a session ended.

    Attributes:
        status_code: Numeric status code, if the transport supplied one
        error_message: Description of the underlying error, if any
    """

    status_code: Optional[int] = None
    error_message: Optional[str] = None

    @property
    def has_error(self) -> bool:
        return self.error_message is not None

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "DisconnectEvent":
        """
        Create from a transport payload.

        The status code may sit at the top level (``statusCode``) or inside
        an error object as ``error.output.statusCode``.
        """
        status_code = _to_int(data.get("statusCode", data.get("status_code")))
        error_message = data.get("message", data.get("error_message"))

        error = data.get("error")
        if isinstance(error, dict):
            if status_code is None:
                output = error.get("output") or {}
                status_code = _to_int(
                    output.get("statusCode", error.get("statusCode"))
                )
            if error_message is None:
                error_message = error.get("message") or "unknown error"
        elif isinstance(error, str) and error_message is None:
            error_message = error

        return cls(status_code=status_code, error_message=error_message)


@dataclass
class ConnectionUpdate(BaseResponse):
    """
    A lifecycle update from the transport.

    Any combination of fields may be present.

    Attributes:
        connection: New phase ("connecting", "open" or "close")
        qr: Pairing code to present to the user
        last_disconnect: Disconnect details accompanying a "close" phase
    """

    connection: Optional[str] = None
    qr: Optional[str] = None
    last_disconnect: Optional[DisconnectEvent] = None

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "ConnectionUpdate":
        """Create from response data dictionary."""
        last_disconnect = data.get("lastDisconnect", data.get("last_disconnect"))
        if isinstance(last_disconnect, dict):
            last_disconnect = DisconnectEvent._from_data(last_disconnect)
        elif not isinstance(last_disconnect, DisconnectEvent):
            last_disconnect = None

        return cls(
            connection=data.get("connection"),
            qr=data.get("qr"),
            last_disconnect=last_disconnect,
        )
