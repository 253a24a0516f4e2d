"""Per-sender busy tracking."""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger


class SessionTracker:
    """
    Track which senders have an assistant run in flight.

    Entries are created lazily and only ever flip between busy and idle;
    they live as long as the process. All access happens on the event loop
    thread, so no lock is taken.
    """

    def __init__(self):
        self._busy: dict[str, bool] = {}

    def touch(self, sender_id: str) -> None:
        """Register a sender as idle if it has not been seen yet."""
        self._busy.setdefault(sender_id, False)

    def is_busy(self, sender_id: str) -> bool:
        return self._busy.get(sender_id, False)

    def try_acquire(self, sender_id: str) -> bool:
        """Mark ``sender_id`` busy. Returns False if it already was."""
        if self._busy.get(sender_id, False):
            return False
        self._busy[sender_id] = True
        return True

    def release(self, sender_id: str) -> None:
        self._busy[sender_id] = False
        logger.debug(f"Session released for {sender_id}")

    @contextmanager
    def hold(self, sender_id: str) -> Iterator[bool]:
        """
        Acquire for the duration of the block.

        Yields whether the acquire succeeded; the flag is only released if
        this block set it.
        """
        acquired = self.try_acquire(sender_id)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(sender_id)
