"""Event types for the message bus."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class InboundMessage:
    """Message received from a chat channel."""

    channel: str  # whatsapp
    sender_id: str  # Normalized sender identity
    chat_id: str  # Raw address used for replies
    content: str  # Message text
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)  # Channel-specific data

    @property
    def is_group(self) -> bool:
        return bool(self.metadata.get("is_group"))

    @property
    def is_status(self) -> bool:
        return bool(self.metadata.get("is_status"))

    @property
    def has_media(self) -> bool:
        return bool(self.metadata.get("has_media"))


@dataclass
class OutboundMessage:
    """Message to send to a chat channel."""

    channel: str
    chat_id: str
    content: str
    reply_to: str | None = None
