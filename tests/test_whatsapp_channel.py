import json

from wabridge.bus.events import OutboundMessage
from wabridge.bus.queue import MessageBus
from wabridge.channels.whatsapp import WhatsAppChannel
from wabridge.config.schema import WhatsAppConfig


class _FakeWs:
    def __init__(self) -> None:
        self.payloads: list[dict] = []
        self.closed = False

    async def send(self, data: str) -> None:
        self.payloads.append(json.loads(data))

    async def close(self) -> None:
        self.closed = True


def _channel() -> WhatsAppChannel:
    return WhatsAppChannel(WhatsAppConfig(allow_from=["491"]), MessageBus())


async def test_bridge_message_is_published_with_normalized_sender() -> None:
    channel = _channel()

    await channel._handle_bridge_message(
        json.dumps(
            {
                "type": "message",
                "id": "wamid-1",
                "from": "+491@c.us",
                "body": "/status",
                "timestamp": 1700000000,
            }
        )
    )

    msg = channel.bus.inbound.get_nowait()
    assert msg.channel == "whatsapp"
    assert msg.sender_id == "491"
    assert msg.chat_id == "+491@c.us"
    assert msg.content == "/status"
    assert msg.metadata["message_id"] == "wamid-1"
    assert msg.is_group is False
    assert msg.is_status is False


async def test_group_and_status_flags_are_detected_from_addresses() -> None:
    channel = _channel()

    await channel._handle_bridge_message(
        json.dumps({"type": "message", "from": "12036@g.us", "author": "491@c.us", "body": "hi"})
    )
    await channel._handle_bridge_message(
        json.dumps({"type": "message", "from": "status@broadcast", "body": "story"})
    )
    await channel._handle_bridge_message(
        json.dumps({"type": "message", "from": "491@c.us", "hasMedia": True, "content": ""})
    )

    group = channel.bus.inbound.get_nowait()
    status = channel.bus.inbound.get_nowait()
    media = channel.bus.inbound.get_nowait()
    assert group.is_group is True
    assert group.sender_id == "491"
    assert status.is_status is True
    assert media.metadata["has_media"] is True
    assert media.content == ""


async def test_invalid_bridge_payloads_are_ignored() -> None:
    channel = _channel()

    await channel._handle_bridge_message("{not json")
    await channel._handle_bridge_message(json.dumps(["message"]))

    assert channel.bus.inbound_size == 0


async def test_logged_out_status_stops_reconnecting() -> None:
    channel = _channel()
    channel._running = True

    await channel._handle_bridge_message(json.dumps({"type": "status", "status": "connected"}))
    assert channel.is_connected is True

    await channel._handle_bridge_message(json.dumps({"type": "status", "status": "logged_out"}))
    assert channel.logged_out is True
    assert channel.is_running is False


async def test_send_wires_reply_to_message_id() -> None:
    channel = _channel()
    fake_ws = _FakeWs()
    channel._ws = fake_ws
    channel._connected = True

    await channel.send(OutboundMessage(channel="whatsapp", chat_id="491@c.us", content="hello", reply_to="wamid-1"))
    await channel.send(OutboundMessage(channel="whatsapp", chat_id="491@c.us", content="plain"))

    assert fake_ws.payloads == [
        {"type": "send", "to": "491@c.us", "text": "hello", "replyTo": "wamid-1"},
        {"type": "send", "to": "491@c.us", "text": "plain"},
    ]


async def test_send_without_connection_is_dropped() -> None:
    channel = _channel()

    await channel.send(OutboundMessage(channel="whatsapp", chat_id="491@c.us", content="hello"))

    assert channel.is_connected is False


async def test_stop_closes_socket() -> None:
    channel = _channel()
    fake_ws = _FakeWs()
    channel._ws = fake_ws
    channel._connected = True
    channel._running = True

    await channel.stop()

    assert fake_ws.closed is True
    assert channel.is_running is False
