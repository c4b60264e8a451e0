"""
PlayFeed Playout Engine

Pull-based playlist scheduling.

Features:
- Ordered, shuffled and random selection modes
- Failure cooldown with fallback playlists
- Playlist reloads while playback continues
- Prefetch of resolved items
"""

from playfeed.playout.candidates import CandidateStore
from playfeed.playout.enumerators import (
    CandidateSelector,
    OrderedSelector,
    RandomSelector,
    ShuffledSelector,
    create_selector,
)
from playfeed.playout.governor import FailureGovernor, GovernorState
from playfeed.playout.prefetch import PrefetchBuffer
from playfeed.playout.scheduler import PlaylistScheduler, SchedulerShutdownError
from playfeed.playout.state import SchedulerState, SchedulerStats

__all__ = [
    # Candidates
    "CandidateStore",
    # Selectors
    "CandidateSelector",
    "OrderedSelector",
    "RandomSelector",
    "ShuffledSelector",
    "create_selector",
    # Governor
    "FailureGovernor",
    "GovernorState",
    # Prefetch
    "PrefetchBuffer",
    # Scheduler
    "PlaylistScheduler",
    "SchedulerShutdownError",
    # State
    "SchedulerState",
    "SchedulerStats",
]
