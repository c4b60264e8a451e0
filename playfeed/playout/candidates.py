"""
Candidate store.

Holds the authoritative candidate list the working queue is built from.
"""

import logging
from collections.abc import Iterable
from typing import Tuple

logger = logging.getLogger(__name__)


class CandidateStore:
    """
    Authoritative candidate list.

    Replaced wholesale, read-only between replacements.
    """

    def __init__(self, candidates: Iterable[str] = ()):
        self._candidates: Tuple[str, ...] = tuple(candidates)

    @property
    def candidates(self) -> Tuple[str, ...]:
        return self._candidates

    @property
    def is_empty(self) -> bool:
        return len(self._candidates) == 0

    def __len__(self) -> int:
        return len(self._candidates)

    def replace(self, candidates: Iterable[str]) -> None:
        """Replace the authoritative list."""
        self._candidates = tuple(candidates)
        logger.debug(f"Candidate list replaced: {len(self._candidates)} candidates")
