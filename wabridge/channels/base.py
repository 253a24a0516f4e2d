"""Base channel interface for chat platforms."""

from abc import ABC, abstractmethod
from typing import Any

from wabridge.bus.events import InboundMessage, OutboundMessage
from wabridge.bus.queue import MessageBus
from wabridge.utils.helpers import normalize_sender_id


class BaseChannel(ABC):
    """
    Abstract base class for chat channel implementations.

    A channel owns the connection to one chat network. It turns network
    events into InboundMessages on the bus and delivers OutboundMessages.
    Authorization is left to the router.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        """
        Initialize the channel.

        Args:
            config: Channel-specific configuration.
            bus: The message bus for communication.
        """
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """
        Start the channel and begin listening for messages.

        This should be a long-running async task that:
        1. Connects to the chat platform
        2. Listens for incoming messages
        3. Forwards messages to the bus via _handle_message()
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel and clean up resources."""
        pass

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> None:
        """
        Send a message through this channel.

        Args:
            msg: The message to send.
        """
        pass

    async def _handle_message(
        self,
        sender_address: str,
        chat_id: str,
        content: str,
        metadata: dict[str, Any] | None = None
    ) -> None:
        """
        Forward an incoming message from the chat platform to the bus.

        Args:
            sender_address: Raw transport address of the sender.
            chat_id: Address replies should go to.
            content: Message text content.
            metadata: Optional channel-specific metadata.
        """
        base_metadata = dict(metadata or {})
        base_metadata.setdefault("sender_address", sender_address)
        msg = InboundMessage(
            channel=self.name,
            sender_id=normalize_sender_id(sender_address),
            chat_id=str(chat_id),
            content=content,
            metadata=base_metadata,
        )
        await self.bus.publish_inbound(msg)

    @property
    def is_running(self) -> bool:
        """Check if the channel is running."""
        return self._running
