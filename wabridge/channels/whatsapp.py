"""WhatsApp channel implementation using a Node.js bridge."""

import asyncio
import json

from loguru import logger

from wabridge.bus.events import OutboundMessage
from wabridge.bus.queue import MessageBus
from wabridge.channels.base import BaseChannel
from wabridge.config.schema import WhatsAppConfig

RECONNECT_DELAY_S = 5
GROUP_SUFFIX = "@g.us"
STATUS_BROADCAST = "status@broadcast"


class WhatsAppChannel(BaseChannel):
    """
    WhatsApp channel that connects to a Node.js bridge.

    The bridge speaks the WhatsApp Web protocol and keeps the linked-device
    credentials. Communication between Python and Node.js is JSON over a
    WebSocket.
    """

    name = "whatsapp"

    def __init__(self, config: WhatsAppConfig, bus: MessageBus):
        super().__init__(config, bus)
        self.config: WhatsAppConfig = config
        self._ws = None
        self._connected = False
        self._logged_out = False

    async def start(self) -> None:
        """Start the WhatsApp channel by connecting to the bridge."""
        import websockets

        bridge_url = self.config.bridge_url
        auth_token = str(self.config.bridge_auth_token or "").strip()
        headers = {"x-bridge-token": auth_token} if auth_token else None

        logger.info(f"Connecting to WhatsApp bridge at {bridge_url}...")

        self._running = True

        while self._running:
            try:
                async with websockets.connect(bridge_url, additional_headers=headers) as ws:
                    self._ws = ws
                    self._connected = True
                    logger.info("Connected to WhatsApp bridge")

                    async for message in ws:
                        try:
                            await self._handle_bridge_message(message)
                        except Exception as e:
                            logger.error(f"Error handling bridge message: {e}")
                        if not self._running:
                            break

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.warning(f"WhatsApp bridge connection error: {e}")
            finally:
                self._connected = False
                self._ws = None

            if self._running:
                logger.info(f"Reconnecting in {RECONNECT_DELAY_S} seconds...")
                await asyncio.sleep(RECONNECT_DELAY_S)

    async def stop(self) -> None:
        """Stop the WhatsApp channel."""
        self._running = False
        self._connected = False

        if self._ws:
            await self._ws.close()
            self._ws = None

    async def send(self, msg: OutboundMessage) -> None:
        """Send a message through WhatsApp."""
        if not self._ws or not self._connected:
            logger.warning("WhatsApp bridge not connected")
            return

        payload = {
            "type": "send",
            "to": msg.chat_id,
            "text": msg.content,
        }
        if msg.reply_to:
            payload["replyTo"] = str(msg.reply_to)
        try:
            await self._ws.send(json.dumps(payload))
        except Exception as e:
            logger.error(f"Error sending WhatsApp message: {e}")

    async def _handle_bridge_message(self, raw: str) -> None:
        """Handle a message from the bridge."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {raw[:100]}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Unexpected bridge payload: {raw[:100]}")
            return

        msg_type = data.get("type")

        if msg_type == "message":
            chat_id = str(data.get("from") or data.get("sender") or "")
            # Phone-number JIDs are preferred over LIDs for identity.
            sender_address = str(data.get("pn") or data.get("author") or chat_id)
            content = data.get("body")
            if content is None:
                content = data.get("content", "")

            await self._handle_message(
                sender_address=sender_address,
                chat_id=chat_id,
                content=str(content or ""),
                metadata={
                    "message_id": data.get("id"),
                    "timestamp": data.get("timestamp"),
                    "is_group": bool(data.get("isGroup")) or chat_id.endswith(GROUP_SUFFIX),
                    "is_status": bool(data.get("isStatus")) or chat_id == STATUS_BROADCAST,
                    "has_media": bool(data.get("hasMedia")),
                },
            )

        elif msg_type == "status":
            status = data.get("status")
            logger.info(f"WhatsApp status: {status}")

            if status in ("connected", "ready"):
                self._connected = True
            elif status == "disconnected":
                logger.info(f"🔌 Disconnected: {data.get('reason', 'unknown')}")
            elif status == "logged_out":
                self._logged_out = True
                self._running = False
                logger.error(
                    "WhatsApp session logged out. Re-link the device in the bridge "
                    "(Settings → Linked Devices) and restart wabridge."
                )

        elif msg_type == "qr":
            logger.info("📱 Scan the QR code in the bridge terminal: WhatsApp → Settings → Linked Devices")

        elif msg_type == "auth_failure":
            logger.error(f"❌ Authentication failed: {data.get('error', '')}")

        elif msg_type == "error":
            logger.error(f"WhatsApp bridge error: {data.get('error')}")

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def logged_out(self) -> bool:
        return self._logged_out
