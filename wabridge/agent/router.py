"""Route inbound chat messages to built-in commands or the assistant."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Protocol

from loguru import logger

from wabridge.agent.invoker import InvocationError
from wabridge.bus.events import InboundMessage, OutboundMessage
from wabridge.bus.queue import MessageBus
from wabridge.channels.chunking import CHUNK_DELAY_S, MAX_RESPONSE_LENGTH, ReplyChunker
from wabridge.config.schema import DEFAULT_TASKS_PROMPT
from wabridge.session.tracker import SessionTracker
from wabridge.utils.helpers import normalize_sender_id

HELP_TEXT = (
    "🤖 *Mission Control WhatsApp Bridge*\n\n"
    "Send any message and Claude will process it.\n\n"
    "*Commands:*\n"
    "`/help` — Show this help\n"
    "`/status` — Check bridge status\n"
    "`/tasks` — List current tasks\n\n"
    "*Examples:*\n"
    "• \"Show me the current tasks\"\n"
    "• \"Create a new task: Fix login bug\"\n"
    "• \"What files were changed recently?\"\n"
    "• \"Run the tests\"\n\n"
    "Everything else is sent directly to Claude Code."
)
BUSY_TEXT = "⏳ Still processing your previous command. Please wait..."
PROCESSING_TEXT = "🔄 Processing..."


class Invoker(Protocol):
    async def invoke(self, prompt: str) -> str: ...


def _preview(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


class MessageRouter:
    """
    Authorize inbound messages and turn them into replies.

    Built-in commands are answered directly; everything else is handed to
    the assistant, at most one run per sender at a time.
    """

    def __init__(
        self,
        bus: MessageBus,
        invoker: Invoker,
        *,
        allow_from: Iterable[str],
        work_dir: Path | str,
        sessions: SessionTracker | None = None,
        max_reply_length: int = MAX_RESPONSE_LENGTH,
        chunk_delay_s: float = CHUNK_DELAY_S,
        tasks_prompt: str = DEFAULT_TASKS_PROMPT,
    ):
        self.bus = bus
        self.invoker = invoker
        self.allow_from: frozenset[str] = frozenset(allow_from)
        self.work_dir = Path(work_dir)
        self.sessions = sessions or SessionTracker()
        self.max_reply_length = max_reply_length
        self.chunk_delay_s = chunk_delay_s
        self.tasks_prompt = tasks_prompt
        self._running = False
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config, bus: MessageBus, invoker: Invoker) -> "MessageRouter":
        return cls(
            bus,
            invoker,
            allow_from=config.allowed_senders,
            work_dir=config.work_path,
            max_reply_length=config.replies.max_length,
            chunk_delay_s=config.chunk_delay_s,
            tasks_prompt=config.assistant.tasks_prompt,
        )

    def is_allowed(self, sender_id: str) -> bool:
        """Fail closed: an empty allow-list rejects everyone."""
        if not self.allow_from:
            return False
        return sender_id in self.allow_from

    async def run(self) -> None:
        """Consume inbound messages until stopped, one task per message."""
        self._running = True
        logger.info("Message router started")
        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            task = asyncio.create_task(self._handle_safely(msg))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def stop(self) -> None:
        """Stop consuming and cancel in-flight handlers."""
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Message router stopped")

    async def _handle_safely(self, msg: InboundMessage) -> None:
        try:
            await self.handle(msg)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Unhandled error for message from {msg.sender_id}")

    async def handle(self, msg: InboundMessage) -> None:
        """Process a single inbound message."""
        if msg.is_group or msg.is_status:
            return
        if not (msg.content or "").strip():
            if msg.has_media:
                logger.debug(f"Ignoring media-only message from {msg.sender_id}")
            return

        sender = normalize_sender_id(msg.sender_id)
        if not self.is_allowed(sender):
            logger.warning(f"🚫 Unauthorized message from {sender}: \"{msg.content[:50]}\"")
            return

        self.sessions.touch(sender)
        text = msg.content.strip()
        logger.info(f"📨 Message from {sender}: \"{_preview(text, 100)}\"")

        command = text.lower()
        if command == "/help":
            await self._reply(msg, HELP_TEXT)
            return
        if command == "/status":
            await self._reply(msg, self._status_text(sender))
            return
        if command == "/tasks":
            text = self.tasks_prompt

        await self._run_prompt(msg, sender, text)

    def _status_text(self, sender: str) -> str:
        active = "Yes (processing...)" if self.sessions.is_busy(sender) else "Idle"
        return (
            "🟢 *Bridge Status*\n\n"
            f"Working directory: `{self.work_dir}`\n"
            f"Session active: {active}"
        )

    async def _run_prompt(self, msg: InboundMessage, sender: str, prompt: str) -> None:
        with self.sessions.hold(sender) as acquired:
            if not acquired:
                await self._reply(msg, BUSY_TEXT)
                return
            try:
                await self._reply(msg, PROCESSING_TEXT)
                result = await self.invoker.invoke(prompt)
                chunker = ReplyChunker(
                    lambda part: self._reply(msg, part),
                    max_length=self.max_reply_length,
                    delay_s=self.chunk_delay_s,
                )
                parts = await chunker.send(result)
                logger.info(f"Replied to {sender} in {parts} message(s)")
            except InvocationError as exc:
                logger.error(f"❌ Claude error for {sender}: {exc}")
                await self._reply(msg, f"❌ Error: {exc}")
            except Exception as exc:
                logger.exception(f"Unexpected failure handling prompt from {sender}")
                await self._reply(msg, f"❌ Error: {exc}")

    async def _reply(self, msg: InboundMessage, text: str) -> None:
        await self.bus.publish_outbound(
            OutboundMessage(
                channel=msg.channel,
                chat_id=msg.chat_id,
                content=text,
                reply_to=msg.metadata.get("message_id"),
            )
        )
