"""
Scheduler state snapshots.

Read-only views of a PlaylistScheduler for status pages and admin tools.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from playfeed.constants import PlaybackMode
from playfeed.playout.governor import GovernorState


@dataclass
class SchedulerStats:
    """Running counters of a scheduler."""

    delivered: int = 0
    failed: int = 0
    rejected: int = 0
    dropped: int = 0  # Resolved but discarded (stale list, shutdown)
    loops: int = 0
    reloads: int = 0
    fallbacks: int = 0


@dataclass
class SchedulerState:
    """Point-in-time view of a scheduler."""

    mode: PlaybackMode
    loop: bool
    generation: int
    candidate_count: int
    remaining: List[str] = field(default_factory=list)
    stopped: bool = False
    shutting_down: bool = False
    governor_state: GovernorState = GovernorState.NORMAL
    consecutive_failures: int = 0
    prefetched: int = 0
    stats: SchedulerStats = field(default_factory=SchedulerStats)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data["mode"] = self.mode.value
        data["governor_state"] = self.governor_state.value
        return data
