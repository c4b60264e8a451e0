"""
Candidate selectors for playlist scheduling.

A selector owns the working queue of the current pass and decides which
candidate is played next.
"""

import random
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Iterable
from typing import Deque, List, Optional

from playfeed.config import ConfigurationError
from playfeed.constants import PlaybackMode


class CandidateSelector(ABC):
    """
    Base class for candidate selectors.

    replenish() rebuilds the working queue from the authoritative list;
    select() hands out the next candidate or None when the pass is over.
    """

    mode: PlaybackMode

    def __init__(self) -> None:
        self._queue: Deque[str] = deque()

    def replenish(self, candidates: Iterable[str]) -> None:
        """Start a new pass over the given candidates."""
        self._queue = deque(self._arrange(list(candidates)))

    def _arrange(self, candidates: List[str]) -> List[str]:
        """Order a fresh copy of the authoritative list for one pass."""
        return candidates

    @abstractmethod
    def select(self) -> Optional[str]:
        """Get the next candidate, or None if the working queue is empty."""
        pass

    def remaining(self) -> List[str]:
        """Snapshot of the working queue."""
        return list(self._queue)

    def clear(self) -> None:
        self._queue.clear()

    @property
    def is_empty(self) -> bool:
        """Check if the working queue is exhausted."""
        return len(self._queue) == 0

    def __len__(self) -> int:
        return len(self._queue)


class OrderedSelector(CandidateSelector):
    """Play candidates in list order, one pass at a time."""

    mode = PlaybackMode.ORDERED

    def select(self) -> Optional[str]:
        if not self._queue:
            return None
        return self._queue.popleft()


class ShuffledSelector(CandidateSelector):
    """
    Play one random permutation of the list per pass.

    A new permutation is drawn on every replenishment.
    """

    mode = PlaybackMode.SHUFFLE

    def __init__(self, seed: Optional[int] = None) -> None:
        super().__init__()
        self._rng = random.Random(seed)

    def _arrange(self, candidates: List[str]) -> List[str]:
        self._rng.shuffle(candidates)
        return candidates

    def select(self) -> Optional[str]:
        if not self._queue:
            return None
        return self._queue.popleft()


class RandomSelector(CandidateSelector):
    """
    Draw a uniformly random candidate on every pull.

    Candidates are not removed, so the working queue never drains; only an
    empty list means there is nothing to play.
    """

    mode = PlaybackMode.RANDOM

    def __init__(self, seed: Optional[int] = None) -> None:
        super().__init__()
        self._rng = random.Random(seed)

    def select(self) -> Optional[str]:
        if not self._queue:
            return None
        return self._queue[self._rng.randrange(len(self._queue))]


def create_selector(mode: "PlaybackMode | str", seed: Optional[int] = None) -> CandidateSelector:
    """
    Build the selector for a playback mode.

    Raises:
        ConfigurationError: If the mode is not recognised.
    """
    try:
        mode = PlaybackMode.parse(mode)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    if mode == PlaybackMode.ORDERED:
        return OrderedSelector()
    if mode == PlaybackMode.SHUFFLE:
        return ShuffledSelector(seed=seed)
    return RandomSelector(seed=seed)
