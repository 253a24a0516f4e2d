"""Chat channels module for wabridge."""

from wabridge.channels.base import BaseChannel
from wabridge.channels.chunking import ReplyChunker, split_reply
from wabridge.channels.whatsapp import WhatsAppChannel

__all__ = ["BaseChannel", "ReplyChunker", "WhatsAppChannel", "split_reply"]
