"""
Failure governor.

Tracks consecutive resolution failures and holds off new attempts for a
cooldown window once the failure threshold is reached.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from playfeed.constants import DEFAULT_COOLDOWN_SECONDS

logger = logging.getLogger(__name__)


class GovernorState(str, Enum):
    """
    Failure governor state.

    An ESCALATED tier for additional backoff is not implemented; the
    threshold handling ends at COOLING_DOWN.
    """

    NORMAL = "normal"
    COOLING_DOWN = "cooling_down"


@dataclass
class FailureState:
    """Consecutive failure streak."""

    consecutive_failures: int = 0
    last_failure_at: Optional[float] = None
    total_failures: int = 0
    escalations: int = 0
    escalated: bool = False  # Threshold already reported for this streak


class FailureGovernor:
    """
    Gate resolution attempts after repeated failures.

    - every failure increments the streak and stamps the time
    - at max_fail failures, attempts are refused for cooldown_seconds
      after the most recent failure
    - once the window elapses one fresh attempt is allowed; failing it
      re-arms the window
    - any success resets the streak
    """

    def __init__(
        self,
        max_fail: int,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the governor.

        Args:
            max_fail: Consecutive failures that start a cooldown (>= 1)
            cooldown_seconds: Length of the cooldown window
            clock: Monotonic time source
        """
        if max_fail < 1:
            raise ValueError(f"max_fail must be >= 1, got {max_fail}")
        self.max_fail = max_fail
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._state = FailureState()

    @property
    def consecutive_failures(self) -> int:
        return self._state.consecutive_failures

    @property
    def last_failure_at(self) -> Optional[float]:
        return self._state.last_failure_at

    @property
    def state(self) -> GovernorState:
        if self.is_cooling_down():
            return GovernorState.COOLING_DOWN
        return GovernorState.NORMAL

    def is_cooling_down(self) -> bool:
        """Check whether resolution attempts are currently refused."""
        if self._state.consecutive_failures < self.max_fail:
            return False
        if self._state.last_failure_at is None:
            return False
        return self._clock() - self._state.last_failure_at < self.cooldown_seconds

    def cooldown_remaining(self) -> float:
        """Seconds until attempts are allowed again (0 when not cooling down)."""
        if not self.is_cooling_down():
            return 0.0
        return max(0.0, self.cooldown_seconds - (self._clock() - self._state.last_failure_at))

    def record_failure(self) -> bool:
        """
        Record a failed resolution.

        Returns:
            True for the first failure of a streak at or past max_fail,
            i.e. the one failure per streak that should trigger the
            fallback. Lowering max_fail below a running streak makes the
            next failure report.
        """
        self._state.consecutive_failures += 1
        self._state.total_failures += 1
        self._state.last_failure_at = self._clock()

        if self._state.consecutive_failures >= self.max_fail and not self._state.escalated:
            self._state.escalated = True
            self._state.escalations += 1
            logger.warning(
                f"{self._state.consecutive_failures} consecutive resolution failures, "
                f"cooling down for {self.cooldown_seconds:.1f}s"
            )
            return True

        if self._state.consecutive_failures > self.max_fail:
            logger.debug(
                f"Resolution failed again after cooldown "
                f"({self._state.consecutive_failures} consecutive failures)"
            )
        return False

    def record_success(self) -> None:
        """Record a successful resolution, ending any failure streak."""
        if self._state.consecutive_failures >= self.max_fail:
            logger.info(
                f"Resolution recovered after {self._state.consecutive_failures} failures"
            )
        self._state.consecutive_failures = 0
        self._state.last_failure_at = None
        self._state.escalated = False

    def get_stats(self) -> dict:
        """Get governor counters."""
        return {
            "state": self.state.value,
            "consecutive_failures": self._state.consecutive_failures,
            "total_failures": self._state.total_failures,
            "escalations": self._state.escalations,
            "max_fail": self.max_fail,
            "cooldown_seconds": self.cooldown_seconds,
            "cooldown_remaining": self.cooldown_remaining(),
        }
