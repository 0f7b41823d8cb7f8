"""Bounded window of recently processed message ids."""

from __future__ import annotations

import asyncio
from collections import OrderedDict

from modsentry.util.logger import get_logger

logger = get_logger("seen_messages")

DEFAULT_CAPACITY = 1000
DEFAULT_RETAIN = 500


class SeenMessageWindow:
    """Fixed-capacity FIFO set used to drop duplicate message deliveries.

    Once an insertion takes the window past ``capacity`` entries, the oldest
    inserted ids are evicted until only the ``retain`` most recent remain.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, retain: int = DEFAULT_RETAIN) -> None:
        if capacity < 1 or not 0 <= retain <= capacity:
            raise ValueError("retain must be between 0 and capacity, and capacity positive")
        self.capacity = capacity
        self.retain = retain
        self._ids: "OrderedDict[str, None]" = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._ids

    async def check_and_add(self, message_id: str) -> bool:
        """Record ``message_id``; return False if it was already present."""
        async with self._lock:
            if message_id in self._ids:
                return False
            self._ids[message_id] = None
            if len(self._ids) > self.capacity:
                self._evict()
            return True

    def _evict(self) -> None:
        evicted = 0
        while len(self._ids) > self.retain:
            self._ids.popitem(last=False)
            evicted += 1
        logger.debug("[SEEN WINDOW] Evicted %d oldest message ids", evicted)

    def clear(self) -> None:
        self._ids.clear()
