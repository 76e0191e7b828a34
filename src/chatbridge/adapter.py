"""
Message Adapter

Translates between the transport's native message records and the unified
message types. The adapter holds no session state; every call depends only
on its argument.

Native inbound record:
    {
        "key": {"remoteJid": "...", "fromMe": false, "id": "...",
                "participant": "..."},
        "message": {"conversation": "hi"},
        "messageTimestamp": 1700000000,
        "pushName": "Alice"
    }
"""

import logging
from typing import Any, Dict, Optional, Tuple

from .schemas import (
    ContentType,
    MessageContent,
    MessageDirection,
    OutboundRequest,
    UnifiedMessage,
)

logger = logging.getLogger(__name__)

# Envelopes whose "message" field wraps the real content
WRAPPER_KEYS = (
    "ephemeralMessage",
    "viewOnceMessage",
    "viewOnceMessageV2",
    "documentWithCaptionMessage",
)

MEDIA_KEYS = {
    "imageMessage": ContentType.IMAGE,
    "videoMessage": ContentType.VIDEO,
    "audioMessage": ContentType.AUDIO,
    "documentMessage": ContentType.DOCUMENT,
    "stickerMessage": ContentType.STICKER,
}


class MessageAdapter:
    """Bidirectional translator between native and unified messages."""

    def to_unified(self, native: Any) -> Optional[UnifiedMessage]:
        """
        Build a UnifiedMessage from a native inbound record.

        Args:
            native: Native message record

        Returns:
            UnifiedMessage, or None when the record carries no user-facing
            content (receipts, protocol messages, reactions, malformed input)
        """
        if not isinstance(native, dict):
            return None

        key = native.get("key")
        if not isinstance(key, dict) or not key.get("remoteJid"):
            return None

        content = self._extract_content(native.get("message"))
        if content is None:
            logger.debug("Skipping message %s without content", key.get("id"))
            return None

        chat_id = key["remoteJid"]
        from_me = bool(key.get("fromMe"))
        return UnifiedMessage(
            id=str(key.get("id") or ""),
            chat_id=chat_id,
            sender=key.get("participant") or chat_id,
            content=content,
            direction=(
                MessageDirection.OUTBOUND
                if from_me
                else MessageDirection.INBOUND
            ),
            timestamp=_timestamp(native.get("messageTimestamp")),
            push_name=native.get("pushName"),
            raw=native,
        )

    def to_native(self, request: OutboundRequest) -> Dict[str, Any]:
        """
        Build the send payload for an outbound request.

        Args:
            request: Recipient and content to send

        Returns:
            Native content payload for the session's send primitive

        Raises:
            ValueError: If the content lacks what its type requires
        """
        content = request.content
        kind = content.type

        if kind is ContentType.TEXT:
            if content.text is None:
                raise ValueError("Text message requires text")
            return {"text": content.text}

        if kind is ContentType.LOCATION:
            if content.latitude is None or content.longitude is None:
                raise ValueError("Location message requires coordinates")
            return {
                "location": {
                    "degreesLatitude": content.latitude,
                    "degreesLongitude": content.longitude,
                }
            }

        if not content.is_media:
            raise ValueError(f"Unsupported content type: {kind.value}")
        if not content.media_url:
            raise ValueError(f"{kind.value} message requires media_url")

        payload: Dict[str, Any] = {kind.value: {"url": content.media_url}}
        if content.mimetype:
            payload["mimetype"] = content.mimetype
        if content.caption and kind in (
            ContentType.IMAGE,
            ContentType.VIDEO,
            ContentType.DOCUMENT,
        ):
            payload["caption"] = content.caption
        if kind is ContentType.DOCUMENT and content.filename:
            payload["fileName"] = content.filename
        return payload

    def to_outbound(self, message: UnifiedMessage) -> OutboundRequest:
        """Return a request that sends the message's content to its chat."""
        return OutboundRequest(to=message.chat_id, content=message.content)

    def _extract_content(self, message: Any) -> Optional[MessageContent]:
        message = _unwrap(message)
        if not isinstance(message, dict):
            return None

        text = message.get("conversation")
        if isinstance(text, str) and text:
            return MessageContent.of_text(text)

        extended = message.get("extendedTextMessage")
        if isinstance(extended, dict) and extended.get("text"):
            return MessageContent.of_text(extended["text"])

        for key, kind in MEDIA_KEYS.items():
            media = message.get(key)
            if isinstance(media, dict):
                return MessageContent(
                    type=kind,
                    media_url=media.get("url"),
                    mimetype=media.get("mimetype"),
                    caption=media.get("caption"),
                    filename=media.get("fileName"),
                )

        location = message.get("locationMessage")
        if isinstance(location, dict):
            latitude, longitude = _coordinates(location)
            if latitude is not None and longitude is not None:
                return MessageContent(
                    type=ContentType.LOCATION,
                    latitude=latitude,
                    longitude=longitude,
                    caption=location.get("name"),
                )

        return None


def _unwrap(message: Any) -> Any:
    # Envelopes may nest, e.g. ephemeral around view-once
    for _ in range(len(WRAPPER_KEYS)):
        if not isinstance(message, dict):
            return message
        for key in WRAPPER_KEYS:
            wrapper = message.get(key)
            if isinstance(wrapper, dict) and "message" in wrapper:
                message = wrapper["message"]
                break
        else:
            return message
    return message


def _coordinates(location: Dict[str, Any]) -> Tuple[Optional[float], Optional[float]]:
    try:
        return (
            float(location["degreesLatitude"]),
            float(location["degreesLongitude"]),
        )
    except (KeyError, TypeError, ValueError):
        return None, None


def _timestamp(value: Any) -> Optional[int]:
    # Timestamps arrive as ints, numeric strings or {"low": ..., "high": ...}
    if isinstance(value, dict):
        value = value.get("low")
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
