"""
Play queue for a single guild session.
Pure sequence storage: the session decides when items go in and come out.
"""

import logging
from collections import deque
from typing import List

from jukebox.core.interfaces import QueueItem
from jukebox.utils.exceptions import QueueEmpty

logger = logging.getLogger(__name__)


class PlayQueue:
    """
    FIFO of transcoded items awaiting playback.

    Only the enqueue path appends and only the playback session pops the
    head; insertion order is playback order.
    """

    def __init__(self, guild_id: int):
        self.guild_id = guild_id
        self._items: deque = deque()

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: QueueItem) -> None:
        """Add a ready item to the tail of the queue."""
        self._items.append(item)
        logger.info(f"[QUEUE] Added {item.display_title} | Queue size now: {len(self._items)}")

    def pop_front(self) -> QueueItem:
        """
        Remove and return the head of the queue.

        Raises:
            QueueEmpty: If no items remain
        """
        if not self._items:
            raise QueueEmpty(f"Queue is empty for guild {self.guild_id}")

        item = self._items.popleft()
        logger.info(f"[QUEUE] Popped {item.display_title} | Queue size now: {len(self._items)}")
        return item

    def peek_length(self) -> int:
        return len(self._items)

    def snapshot(self) -> List[QueueItem]:
        """Get a copy of the queued items in playback order."""
        return list(self._items)

    def drain(self) -> List[QueueItem]:
        """Remove and return every queued item."""
        items = list(self._items)
        self._items.clear()
        if items:
            logger.info(f"[QUEUE] Drained {len(items)} items for guild {self.guild_id}")
        return items
