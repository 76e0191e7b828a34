"""
Bridge Frame Definitions

Frames exchanged with an external protocol engine over a WebSocket.

Message Format:
    Client to bridge:
    {
        "type": "start" | "send" | "close",
        "data": { ... frame-specific data ... }
    }

    Bridge to client:
    {
        "event": "connection.update" | "creds.update" | "messages.upsert"
                 | "send.ack" | "send.error",
        "id": "<request id, for send.ack and send.error>",
        "data": { ... }
    }
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .base import BaseRequest, BaseResponse


@dataclass
class StartSessionRequest(BaseRequest):
    """
    Ask the bridge to open a session.

    Attributes:
        credentials: Stored session credentials; empty to request pairing
    """

    credentials: Dict[str, Any] = field(default_factory=dict)

    @property
    def _message_type(self) -> str:
        return "start"


@dataclass
class SendMessageFrame(BaseRequest):
    """
    Ask the bridge to deliver a message.

    Attributes:
        id: Request identifier echoed back in the acknowledgment
        jid: Recipient chat identifier
        content: Native content payload
    """

    id: str
    jid: str
    content: Dict[str, Any]

    @property
    def _message_type(self) -> str:
        return "send"


@dataclass
class CloseSessionRequest(BaseRequest):
    """Ask the bridge to close the socket while keeping credentials."""

    @property
    def _message_type(self) -> str:
        return "close"


@dataclass
class BridgeEvent(BaseResponse):
    """
    A frame received from the bridge.

    Attributes:
        event: Event name
        data: Event payload
        id: Request identifier for acknowledgments
    """

    event: str
    data: Any = None
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeEvent":
        # The envelope itself carries "data"; do not unwrap it
        return cls._from_data(data)

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "BridgeEvent":
        if "event" not in data:
            raise ValueError("Bridge frame has no 'event' field")
        return cls(event=data["event"], data=data.get("data"), id=data.get("id"))
