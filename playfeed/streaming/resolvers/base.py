"""
Base resolver and common types.

Provides the abstract base class for all candidate resolvers and the
resolved item handed to the downstream pipeline.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class SourceType(str, Enum):
    """Candidate source types."""

    LOCAL = "local"
    HTTP = "http"
    CUSTOM = "custom"
    UNKNOWN = "unknown"


class ResolverError(Exception):
    """Error during candidate resolution."""

    def __init__(
        self,
        message: str,
        source_type: SourceType = SourceType.UNKNOWN,
        is_retryable: bool = True,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.source_type = source_type
        self.is_retryable = is_retryable
        self.original_error = original_error


@dataclass
class ResolvedItem:
    """
    A resolved, immediately playable item.

    Attributes:
        candidate: The candidate descriptor this item was resolved from
        url: Playable location handed to the media pipeline
        source_type: Type of source that resolved it
        label: Human readable identifier for logging
        resolved_at: When resolution completed
        metadata: Source-specific details (size, content type, ...)
        on_release: Called once when the item is released
    """

    candidate: str
    url: str
    source_type: SourceType = SourceType.UNKNOWN
    label: Optional[str] = None
    resolved_at: datetime = field(default_factory=datetime.utcnow)
    metadata: dict[str, Any] = field(default_factory=dict)
    on_release: Optional[Callable[["ResolvedItem"], None]] = field(
        default=None, repr=False, compare=False
    )
    released: bool = field(default=False, compare=False)

    def __post_init__(self):
        if self.label is None:
            self.label = self.candidate

    def release(self) -> None:
        """Release resources held by this item. Safe to call more than once."""
        if self.released:
            return
        self.released = True
        if self.on_release is None:
            return
        try:
            self.on_release(self)
        except Exception as e:
            logger.warning(f"Error releasing {self.label}: {e}")


class BaseResolver(ABC):
    """
    Abstract base class for candidate resolvers.

    Each resolver handles one kind of candidate and knows how to turn it
    into a playable item. Resolvers signal failure by raising ResolverError.
    """

    source_type: SourceType = SourceType.UNKNOWN

    @abstractmethod
    async def resolve(self, candidate: str) -> ResolvedItem:
        """
        Resolve a candidate to a playable item.

        Args:
            candidate: The candidate descriptor

        Returns:
            ResolvedItem ready for playback

        Raises:
            ResolverError: If resolution fails
        """
        pass

    @abstractmethod
    def can_handle(self, candidate: str) -> bool:
        """
        Check if this resolver can handle the given candidate.

        Args:
            candidate: The candidate descriptor

        Returns:
            True if this resolver can handle the candidate
        """
        pass

    async def aclose(self) -> None:
        """Release resolver resources (connections, sessions)."""
        return None
