"""
Prefetch buffer.

Holds resolved items ahead of the consumer so playback does not wait on a
slow resolution.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Deque, Optional

from playfeed.streaming.resolvers.base import ResolvedItem

logger = logging.getLogger(__name__)


class PrefetchBuffer:
    """
    Bounded FIFO of resolved-but-undelivered items.

    At most one background fill task runs at a time. Items removed
    without being delivered are released.
    """

    def __init__(self, depth: int):
        self.depth = depth
        self._items: Deque[ResolvedItem] = deque()
        self._fill_task: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self.depth

    @property
    def fill_task(self) -> Optional[asyncio.Task]:
        return self._fill_task

    @property
    def is_filling(self) -> bool:
        return self._fill_task is not None and not self._fill_task.done()

    def push(self, item: ResolvedItem) -> None:
        self._items.append(item)

    def pop(self) -> Optional[ResolvedItem]:
        """Take the oldest buffered item."""
        if not self._items:
            return None
        return self._items.popleft()

    def labels(self) -> list[str]:
        return [item.label for item in self._items]

    def drain(self) -> int:
        """Release every buffered item. Returns the number released."""
        count = len(self._items)
        while self._items:
            self._items.popleft().release()
        if count:
            logger.debug(f"Released {count} prefetched items")
        return count

    def schedule_fill(self, fill: Callable[[], Awaitable[int]]) -> Optional[asyncio.Task]:
        """
        Start a background fill unless one is already running.

        Returns None when prefetching is disabled or no event loop runs.
        """
        if self.depth <= 0:
            return None
        if self.is_filling:
            return self._fill_task
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        self._fill_task = loop.create_task(fill())
        self._fill_task.add_done_callback(self._on_fill_done)
        return self._fill_task

    def cancel_fill(self) -> Optional[asyncio.Task]:
        """
        Cancel a running fill. Returns the cancelled task, if any.

        A fill cannot cancel itself; called from inside the fill task
        (e.g. a hook reloading the playlist) this is a no-op.
        """
        task = self._fill_task
        if task is None or task.done():
            self._fill_task = None
            return None
        try:
            if task is asyncio.current_task():
                return None
        except RuntimeError:
            # No running loop in this thread
            return None
        self._fill_task = None
        task.cancel()
        return task

    @staticmethod
    def _on_fill_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Prefetch fill failed: {error}", exc_info=error)
