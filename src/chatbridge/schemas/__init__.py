"""
Schemas Package

Data structures shared across the client. Schemas are organized by category:
connection lifecycle payloads, chat messages and bridge frames.
"""

from .base import BaseRequest, BaseResponse
from .connection import ConnectionUpdate, DisconnectEvent
from .message import (
    ContentType,
    MessageContent,
    MessageDirection,
    OutboundRequest,
    UnifiedMessage,
)
from .bridge import (
    BridgeEvent,
    CloseSessionRequest,
    SendMessageFrame,
    StartSessionRequest,
)

__all__ = [
    # Base classes
    "BaseRequest",
    "BaseResponse",
    # Connection schemas
    "ConnectionUpdate",
    "DisconnectEvent",
    # Message schemas
    "ContentType",
    "MessageContent",
    "MessageDirection",
    "OutboundRequest",
    "UnifiedMessage",
    # Bridge frames
    "BridgeEvent",
    "CloseSessionRequest",
    "SendMessageFrame",
    "StartSessionRequest",
]
