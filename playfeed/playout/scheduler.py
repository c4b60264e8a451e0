"""
Playlist scheduler.

Pull-based façade that turns a candidate list into a stream of resolved,
playable items for the downstream media pipeline.
"""

import asyncio
import inspect
import logging
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any, Optional, Tuple

from playfeed.config import ConfigurationError, SchedulerConfig, build_scheduler_config
from playfeed.constants import PlaybackMode
from playfeed.playout.candidates import CandidateStore
from playfeed.playout.enumerators import CandidateSelector, create_selector
from playfeed.playout.governor import FailureGovernor
from playfeed.playout.prefetch import PrefetchBuffer
from playfeed.playout.state import SchedulerState, SchedulerStats
from playfeed.streaming.gateway import ResolverGateway
from playfeed.streaming.resolvers.base import ResolvedItem

logger = logging.getLogger(__name__)

AcceptsHook = Callable[[str], bool]
LifecycleHook = Callable[[], Any]


class SchedulerShutdownError(Exception):
    """Mutating operation on a scheduler that has been shut down."""


class PlaylistScheduler:
    """
    Dynamic playlist scheduler.

    Each call to next() yields one resolved item or None ("nothing right
    now"). Failed resolutions are skipped, consecutive failures trigger a
    cooldown, and the candidate list can be reloaded while playback runs.

    Hooks may be plain callables or coroutine functions:
        accepts(candidate) -> bool    filter applied before resolution
        on_loop()                     working queue exhausted, looping
        on_done()                     playlist exhausted, not looping
        on_fail() -> list | None      failure threshold reached; a
                                      non-empty list is reloaded

    Usage:
        scheduler = PlaylistScheduler(["/music/a.mp3", "/music/b.mp3"], mode="shuffle")
        async for item in scheduler:
            await pipeline.play(item.url)
    """

    def __init__(
        self,
        candidates: Iterable[str] = (),
        gateway: Optional[ResolverGateway] = None,
        config: Optional[SchedulerConfig] = None,
        *,
        accepts: Optional[AcceptsHook] = None,
        on_loop: Optional[LifecycleHook] = None,
        on_done: Optional[LifecycleHook] = None,
        on_fail: Optional[LifecycleHook] = None,
        clock: Callable[[], float] = time.monotonic,
        **options: Any,
    ):
        """
        Initialize the scheduler.

        Args:
            candidates: Initial candidate list
            gateway: Resolver gateway; built-in resolvers when omitted
            config: Scheduler configuration
            accepts: Acceptance predicate
            on_loop: Hook run before a new pass when looping
            on_done: Hook run once when the playlist is exhausted
            on_fail: Fallback hook run when max_fail is reached
            clock: Monotonic time source for the cooldown window
            **options: SchedulerConfig fields overriding `config`

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        if options:
            base = config.model_dump() if config is not None else {}
            config = build_scheduler_config(**{**base, **options})
        self._config = config or SchedulerConfig()

        self._selector: CandidateSelector = create_selector(
            self._config.mode, seed=self._config.shuffle_seed
        )
        self._store = CandidateStore(candidates)
        self._owns_gateway = gateway is None
        self._gateway = gateway or ResolverGateway.from_config()
        self._governor = FailureGovernor(
            self._config.max_fail, self._config.cooldown_seconds, clock=clock
        )
        self._prefetch = PrefetchBuffer(self._config.prefetch_depth)

        self._accepts = accepts
        self._on_loop = on_loop
        self._on_done = on_done
        self._on_fail = on_fail

        # Serializes whole pulls
        self._pull_lock = asyncio.Lock()
        # Guards the working queue; shared with reload
        self._queue_lock = asyncio.Lock()
        self._shutting_down = threading.Event()

        self._generation = 0
        self._pass_started = False
        self._stopped = False
        self._done_fired = False
        self._stats = SchedulerStats()

        logger.info(
            f"PlaylistScheduler created: mode={self._config.mode.value}, "
            f"loop={self._config.loop}, max_fail={self._config.max_fail}, "
            f"{len(self._store)} candidates"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def mode(self) -> PlaybackMode:
        return self._config.mode

    @property
    def gateway(self) -> ResolverGateway:
        return self._gateway

    @property
    def governor(self) -> FailureGovernor:
        return self._governor

    @property
    def candidates(self) -> Tuple[str, ...]:
        return self._store.candidates

    @property
    def generation(self) -> int:
        """Number of reloads so far; in-flight work of older generations is discarded."""
        return self._generation

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down.is_set()

    @property
    def prefetched(self) -> int:
        return len(self._prefetch)

    @property
    def prefetch_task(self) -> Optional[asyncio.Task]:
        return self._prefetch.fill_task

    def remaining(self) -> list[str]:
        """Snapshot of the current working queue."""
        return self._selector.remaining()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def next(self) -> Optional[ResolvedItem]:
        """
        Get the next resolved item.

        Returns:
            A ResolvedItem owned by the caller, or None when nothing is
            available right now (cooldown, exhausted, shut down).
        """
        if self._shutting_down.is_set():
            return None

        # Let a running fill finish so items keep their order
        task = self._prefetch.fill_task
        if not len(self._prefetch) and self._prefetch.is_filling and task is not asyncio.current_task():
            await asyncio.wait({task})

        item = self._prefetch.pop()
        if item is None:
            if self._stopped and not self._config.loop:
                return None
            item = await self._pull()

        if item is not None:
            self._stats.delivered += 1
            logger.debug(f"Delivering {item.label}")
        self._schedule_refill()
        return item

    async def load(self, candidates: Iterable[str]) -> None:
        """
        Replace the candidate list without interrupting the current pass.

        The new list is used from the next replenishment on.

        Raises:
            SchedulerShutdownError: If the scheduler has been shut down.
        """
        self._ensure_running("load")
        async with self._queue_lock:
            self._store.replace(candidates)
        logger.info(f"Loaded {len(self._store)} candidates")

    async def reload(self, candidates: Iterable[str], drain_queued: bool = True) -> None:
        """
        Atomically swap the candidate list and start a fresh pass.

        Args:
            candidates: New candidate list
            drain_queued: Release prefetched items, cancel the running fill
                and start a new one from the new list

        Raises:
            SchedulerShutdownError: If the scheduler has been shut down.
        """
        self._ensure_running("reload")
        async with self._queue_lock:
            self._store.replace(candidates)
            self._selector.replenish(self._store.candidates)
            self._generation += 1
            self._pass_started = True
            self._stopped = False
            self._done_fired = False
        self._stats.reloads += 1
        logger.info(
            f"Playlist reloaded: {len(self._store)} candidates (generation {self._generation})"
        )

        if drain_queued:
            self._prefetch.cancel_fill()
            self._stats.dropped += self._prefetch.drain()
            self._schedule_refill()

    async def prefetch(self) -> int:
        """
        Fill the prefetch buffer up to prefetch_depth.

        Returns:
            Number of items added.
        """
        added = 0
        while not self._shutting_down.is_set() and len(self._prefetch) < self._config.prefetch_depth:
            item = await self._pull()
            if item is None:
                break
            self._prefetch.push(item)
            added += 1
        if added:
            logger.debug(f"Prefetched {added} items ({len(self._prefetch)} buffered)")
        return added

    def reconfigure(self, **changes: Any) -> SchedulerConfig:
        """
        Apply new option values to a live scheduler.

        Raises:
            ConfigurationError: If an option is unknown or invalid, or if the
                mode or shuffle_seed changes.
        """
        self._ensure_running("reconfigure")
        new_config = build_scheduler_config(**{**self._config.model_dump(), **changes})
        if new_config.mode != self._config.mode:
            raise ConfigurationError(
                f"Cannot switch mode of a live scheduler "
                f"({self._config.mode.value} -> {new_config.mode.value})"
            )
        if new_config.shuffle_seed != self._config.shuffle_seed:
            raise ConfigurationError("Cannot change shuffle_seed of a live scheduler")

        self._config = new_config
        self._governor.max_fail = new_config.max_fail
        self._governor.cooldown_seconds = new_config.cooldown_seconds
        self._prefetch.depth = new_config.prefetch_depth
        logger.info(f"Scheduler reconfigured: {changes}")
        return new_config

    def shutdown(self) -> None:
        """
        Stop handing out items.

        Setting the flag never blocks and may be done from any thread.
        Called on the event loop it also cancels the running fill and
        releases prefetched items; otherwise aclose() does that.
        """
        if self._shutting_down.is_set():
            return
        self._shutting_down.set()
        logger.info("PlaylistScheduler shutting down")

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self._prefetch.cancel_fill()
        self._stats.dropped += self._prefetch.drain()

    async def aclose(self) -> None:
        """Shut down and wait for background work to finish."""
        task = self._prefetch.fill_task
        self.shutdown()
        self._prefetch.cancel_fill()
        if task is not None and not task.done() and task is not asyncio.current_task():
            await asyncio.wait({task})
        self._stats.dropped += self._prefetch.drain()
        if self._owns_gateway:
            await self._gateway.aclose()

    def get_state(self) -> SchedulerState:
        """Get a snapshot for status pages and admin tools."""
        return SchedulerState(
            mode=self._config.mode,
            loop=self._config.loop,
            generation=self._generation,
            candidate_count=len(self._store),
            remaining=self.remaining(),
            stopped=self._stopped,
            shutting_down=self._shutting_down.is_set(),
            governor_state=self._governor.state,
            consecutive_failures=self._governor.consecutive_failures,
            prefetched=len(self._prefetch),
            stats=SchedulerStats(**vars(self._stats)),
        )

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler, governor and error counters."""
        return {
            **vars(self._stats),
            "governor": self._governor.get_stats(),
            "errors": self._gateway.error_handler.get_error_counts(),
        }

    def __aiter__(self) -> "PlaylistScheduler":
        return self

    async def __anext__(self) -> ResolvedItem:
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item

    # ------------------------------------------------------------------
    # Pull algorithm
    # ------------------------------------------------------------------

    def _attempt_limit(self) -> int:
        if self._config.max_attempts_per_pull is not None:
            return self._config.max_attempts_per_pull
        return max(len(self._store), len(self._selector), 1)

    async def _pull(self) -> Optional[ResolvedItem]:
        """Run the selection/resolution loop for one item."""
        async with self._pull_lock:
            limit = self._attempt_limit()
            attempts = 0

            while attempts < limit:
                if self._shutting_down.is_set():
                    return None

                if self._governor.is_cooling_down():
                    logger.debug(
                        f"Cooling down, {self._governor.cooldown_remaining():.2f}s left"
                    )
                    return None

                candidate, generation = await self._take_candidate()
                if candidate is None:
                    return None
                attempts += 1

                if not await self._is_accepted(candidate):
                    self._stats.rejected += 1
                    logger.debug(f"Candidate rejected by filter: {candidate}")
                    continue

                if self._shutting_down.is_set():
                    return None

                outcome = await self._gateway.resolve(candidate, self._config.resolve_timeout)

                if outcome.ok:
                    item = outcome.item
                    if self._shutting_down.is_set() or generation != self._generation:
                        self._stats.dropped += 1
                        logger.debug(f"Discarding {item.label}: resolved for an outdated playlist")
                        item.release()
                        continue
                    self._governor.record_success()
                    return item

                self._stats.failed += 1
                logger.info(
                    f"Skipping {candidate}: {outcome.error.error_type.value} - "
                    f"{outcome.error.message}"
                )
                if self._governor.record_failure():
                    await self._fallback()

            logger.warning(f"No playable candidate after {attempts} attempts")
            return None

    async def _take_candidate(self) -> Tuple[Optional[str], int]:
        """
        Take the next candidate from the working queue, starting a new pass
        when it is exhausted.

        Returns:
            (candidate or None, generation the candidate belongs to)
        """
        async with self._queue_lock:
            if not self._pass_started:
                self._selector.replenish(self._store.candidates)
                self._pass_started = True
            if not self._selector.is_empty:
                return self._selector.select(), self._generation

        if not self._config.loop:
            await self._finish()
            return None, self._generation

        self._stats.loops += 1
        logger.debug("Working queue exhausted, starting a new pass")
        await self._call_hook("on_loop", self._on_loop)

        async with self._queue_lock:
            if self._selector.is_empty:
                self._selector.replenish(self._store.candidates)
            return self._selector.select(), self._generation

    async def _finish(self) -> None:
        self._stopped = True
        if self._done_fired:
            return
        self._done_fired = True
        logger.info("Playlist exhausted")
        await self._call_hook("on_done", self._on_done)

    async def _fallback(self) -> None:
        """Ask on_fail for a replacement playlist and reload it."""
        candidates = await self._call_hook("on_fail", self._on_fail)
        if not candidates or self._shutting_down.is_set():
            return
        self._stats.fallbacks += 1
        logger.warning(f"Loading fallback playlist ({len(candidates)} candidates)")
        await self.reload(candidates)

    async def _is_accepted(self, candidate: str) -> bool:
        if self._accepts is None:
            return True
        try:
            result = self._accepts(candidate)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception as e:
            logger.warning(f"Filter raised for {candidate}, rejecting: {e}")
            return False

    async def _call_hook(self, name: str, hook: Optional[Callable[[], Any]]) -> Any:
        if hook is None:
            return None
        try:
            result = hook()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.exception(f"{name} hook failed: {e}")
            return None

    def _schedule_refill(self) -> None:
        if self._shutting_down.is_set() or self._config.prefetch_depth <= 0:
            return
        self._prefetch.schedule_fill(self.prefetch)

    def _ensure_running(self, operation: str) -> None:
        if self._shutting_down.is_set():
            raise SchedulerShutdownError(f"Cannot {operation}: scheduler is shut down")
