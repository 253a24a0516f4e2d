"""Message bus module for wabridge."""

from wabridge.bus.events import InboundMessage, OutboundMessage
from wabridge.bus.queue import MessageBus

__all__ = ["MessageBus", "InboundMessage", "OutboundMessage"]
