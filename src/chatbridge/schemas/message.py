"""
Message Schema Definitions

This module defines the backend-agnostic message structures handed to and
accepted from callers: the content descriptor, the unified inbound message
and the outbound send request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .base import BaseResponse


class ContentType(Enum):
    """Kind of content a message carries."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    STICKER = "sticker"
    LOCATION = "location"


class MessageDirection(Enum):
    """Whether a message was received or sent by this client."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass
class MessageContent(BaseResponse):
    """
    Body of a message: plain text or a structured media descriptor.

    Attributes:
        type: Content kind
        text: Message text (TEXT only)
        media_url: Location of the media payload (media kinds only)
        mimetype: MIME type of the media
        caption: Caption shown with image, video or document content
        filename: Original file name of a document
        latitude: Latitude of a shared location
        longitude: Longitude of a shared location
    """

    type: ContentType
    text: Optional[str] = None
    media_url: Optional[str] = None
    mimetype: Optional[str] = None
    caption: Optional[str] = None
    filename: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def of_text(cls, text: str) -> "MessageContent":
        return cls(type=ContentType.TEXT, text=text)

    @property
    def is_media(self) -> bool:
        return self.type not in (ContentType.TEXT, ContentType.LOCATION)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, omitting unset fields."""
        data: Dict[str, Any] = {"type": self.type.value}
        for name in (
            "text",
            "media_url",
            "mimetype",
            "caption",
            "filename",
            "latitude",
            "longitude",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "MessageContent":
        """Create from dictionary data."""
        return cls(
            type=ContentType(data.get("type", "text")),
            text=data.get("text"),
            media_url=data.get("media_url"),
            mimetype=data.get("mimetype"),
            caption=data.get("caption"),
            filename=data.get("filename"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )


@dataclass
class UnifiedMessage:
    """
    Canonical representation of a chat message.

    Attributes:
        id: Message identifier assigned by the backend
        chat_id: Identifier of the chat the message belongs to
        sender: Identifier of the author (the participant in group chats)
        content: Message body
        direction: INBOUND for received messages, OUTBOUND for our own
        timestamp: Unix timestamp in seconds, if known
        push_name: Display name the sender advertised, if any
        raw: Native message the instance was built from; for debugging
             only, ignored by equality and repr
    """

    id: str
    chat_id: str
    sender: str
    content: MessageContent
    direction: MessageDirection = MessageDirection.INBOUND
    timestamp: Optional[int] = None
    push_name: Optional[str] = None
    raw: Any = field(default=None, repr=False, compare=False)

    @property
    def text(self) -> Optional[str]:
        """Text of the message, or the caption for media content."""
        if self.content.type is ContentType.TEXT:
            return self.content.text
        return self.content.caption

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "chat_id": self.chat_id,
            "sender": self.sender,
            "content": self.content.to_dict(),
            "direction": self.direction.value,
            "timestamp": self.timestamp,
            "push_name": self.push_name,
        }


@dataclass
class OutboundRequest(BaseResponse):
    """
    Caller request to send a message.

    Attributes:
        to: Recipient chat identifier
        content: Message body
    """

    to: str
    content: MessageContent

    @classmethod
    def text(cls, to: str, body: str) -> "OutboundRequest":
        """Build a plain text request."""
        return cls(to=to, content=MessageContent.of_text(body))

    def to_dict(self) -> Dict[str, Any]:
        return {"to": self.to, "content": self.content.to_dict()}

    @classmethod
    def _from_data(cls, data: Dict[str, Any]) -> "OutboundRequest":
        """Create from dictionary data; a bare 'text' key is accepted."""
        content = data.get("content")
        if isinstance(content, dict):
            parsed = MessageContent._from_data(content)
        elif isinstance(content, str):
            parsed = MessageContent.of_text(content)
        else:
            parsed = MessageContent.of_text(data.get("text", ""))
        return cls(to=data["to"], content=parsed)
