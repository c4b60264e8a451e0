"""Shared constants and enums for PlayFeed."""

from enum import Enum

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_COOLDOWN_SECONDS = 1.0
DEFAULT_MAX_FAIL = 10
DEFAULT_PREFETCH_DEPTH = 1

# Errors kept by ErrorHandler for inspection
ERROR_HISTORY_LIMIT = 100


class PlaybackMode(str, Enum):
    """
    Candidate selection policy.

    Fixed for the lifetime of a scheduler.
    """

    ORDERED = "ordered"  # Front of the queue, list order
    SHUFFLE = "shuffle"  # One permutation per pass
    RANDOM = "random"  # Uniform draw on every pull, queue never drained

    @classmethod
    def parse(cls, value: "PlaybackMode | str") -> "PlaybackMode":
        """Convert a mode name to a PlaybackMode, accepting values or names."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            v_lower = value.strip().lower()
            for mode in cls:
                if mode.value == v_lower:
                    return mode
        raise ValueError(
            f"Invalid playback mode: {value!r}. Must be one of: {[m.value for m in cls]}"
        )
