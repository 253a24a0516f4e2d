"""Split long assistant replies into transport-sized parts."""

import asyncio
from typing import Awaitable, Callable

MAX_RESPONSE_LENGTH = 4000
CHUNK_DELAY_S = 0.5


def _lines_with_breaks(text: str) -> list[str]:
    lines = text.split("\n")
    pieces = [line + "\n" for line in lines[:-1]]
    if lines[-1]:
        pieces.append(lines[-1])
    return pieces


def split_reply(text: str, max_length: int = MAX_RESPONSE_LENGTH) -> list[str]:
    """
    Split a reply into parts of at most ``max_length`` characters.

    Text that already fits is returned untouched as a single part. Otherwise
    whole lines are packed into parts labeled ``Part <n>:``. Lines are never
    cut, so a single line longer than ``max_length`` becomes its own
    oversized part.
    """
    if len(text) <= max_length:
        return [text]

    bodies: list[str] = []
    buffer = ""
    for line in _lines_with_breaks(text):
        if buffer and len(buffer) + len(line) > max_length:
            bodies.append(buffer)
            buffer = ""
        buffer += line
    if buffer:
        bodies.append(buffer)

    return [f"Part {index}:\n\n{body}" for index, body in enumerate(bodies, start=1)]


class ReplyChunker:
    """Send a reply through ``send`` as one message or a paced series of parts."""

    def __init__(
        self,
        send: Callable[[str], Awaitable[None]],
        max_length: int = MAX_RESPONSE_LENGTH,
        delay_s: float = CHUNK_DELAY_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._send = send
        self.max_length = max(1, int(max_length))
        self.delay_s = max(0.0, float(delay_s))
        self._sleep = sleep

    async def send(self, text: str) -> int:
        """Send ``text`` and return how many messages went out."""
        parts = split_reply(text, self.max_length)
        for index, part in enumerate(parts):
            if index:
                # Back-to-back sends trip WhatsApp rate limiting.
                await self._sleep(self.delay_s)
            await self._send(part)
        return len(parts)
