"""
Integration tests for live reloads, prefetching and shutdown.

These exercise the scheduler with concurrent tasks: resolutions held open
with FakeResolver.block() while the playlist is swapped or the scheduler
shut down.
"""

import asyncio
import threading

import pytest

from playfeed.playout.scheduler import PlaylistScheduler
from playfeed.streaming.gateway import ResolverGateway
from tests.fixtures.factories import FakeResolver


async def wait_for_calls(resolver, count, rounds=100):
    """Yield to the event loop until the resolver has seen `count` calls."""
    for _ in range(rounds):
        if len(resolver.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"resolver saw {resolver.calls}, expected {count} calls")


def make_scheduler(candidates, resolver, **options):
    return PlaylistScheduler(candidates, gateway=ResolverGateway([resolver]), **options)


@pytest.mark.integration
class TestReloadDuringResolution:
    """Reloading while a resolution is in flight."""

    @pytest.mark.asyncio
    async def test_stale_item_discarded(self):
        """An item resolved for the old list is released, not delivered."""
        resolver = FakeResolver()
        gate = resolver.block("a")
        scheduler = make_scheduler(["a", "b"], resolver, prefetch_depth=0)

        pending = asyncio.create_task(scheduler.next())
        await wait_for_calls(resolver, 1)

        await scheduler.reload(["x", "y"])
        gate.set()
        item = await pending

        assert item.candidate == "x"
        assert resolver.released == ["a"]
        assert scheduler.get_stats()["dropped"] == 1
        assert scheduler.generation == 1

    @pytest.mark.asyncio
    async def test_pulls_after_reload_use_new_list(self):
        """After reload() only candidates of the new list are delivered."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c"], resolver, prefetch_depth=0)
        first = await scheduler.next()

        await scheduler.reload(["x", "y"])
        items = [await scheduler.next() for _ in range(4)]

        assert first.candidate == "a"
        assert [item.candidate for item in items] == ["x", "y", "x", "y"]

    @pytest.mark.asyncio
    async def test_shutdown_during_resolution(self):
        """A resolution finishing after shutdown is released and None returned."""
        resolver = FakeResolver()
        gate = resolver.block("a")
        scheduler = make_scheduler(["a", "b"], resolver, prefetch_depth=0)

        pending = asyncio.create_task(scheduler.next())
        await wait_for_calls(resolver, 1)

        scheduler.shutdown()
        gate.set()

        assert await pending is None
        assert resolver.released == ["a"]
        assert resolver.calls == ["a"]

    @pytest.mark.asyncio
    async def test_concurrent_callers_get_distinct_items(self):
        """Concurrent next() calls are serialized and never share an item."""
        resolver = FakeResolver(delays={"a": 0.01, "b": 0.01})
        scheduler = make_scheduler(["a", "b", "c"], resolver, prefetch_depth=0)

        items = await asyncio.gather(scheduler.next(), scheduler.next(), scheduler.next())

        assert sorted(item.candidate for item in items) == ["a", "b", "c"]


@pytest.mark.integration
class TestPrefetch:
    """Background prefetching."""

    @pytest.mark.asyncio
    async def test_buffer_fills_to_depth(self):
        """After a delivery the buffer fills up to prefetch_depth."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c", "d"], resolver, prefetch_depth=2)

        first = await scheduler.next()
        await asyncio.wait({scheduler.prefetch_task})

        assert first.candidate == "a"
        assert scheduler.prefetched == 2
        assert resolver.calls == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_order_preserved_while_filling(self):
        """next() waits for a running fill instead of overtaking it."""
        resolver = FakeResolver(delays={"b": 0.01})
        scheduler = make_scheduler(["a", "b", "c", "d"], resolver, prefetch_depth=2)

        items = [await scheduler.next() for _ in range(4)]

        assert [item.candidate for item in items] == ["a", "b", "c", "d"]
        await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_prefetch_call(self):
        """prefetch() fills the buffer on demand."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c"], resolver, prefetch_depth=2)

        added = await scheduler.prefetch()

        assert added == 2
        assert scheduler.prefetched == 2
        assert (await scheduler.next()).candidate == "a"
        await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_reload_releases_buffered_items(self):
        """reload() releases prefetched items and refills from the new list."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c", "d"], resolver, prefetch_depth=2)
        await scheduler.next()
        await asyncio.wait({scheduler.prefetch_task})

        await scheduler.reload(["x", "y"])
        item = await scheduler.next()

        assert resolver.released == ["b", "c"]
        assert item.candidate == "x"
        assert scheduler.get_stats()["dropped"] == 2
        await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_reload_keeping_buffered_items(self):
        """With drain_queued=False buffered items are still delivered."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c", "d"], resolver, prefetch_depth=2)
        await scheduler.next()
        await asyncio.wait({scheduler.prefetch_task})

        await scheduler.reload(["x", "y"], drain_queued=False)
        items = [await scheduler.next() for _ in range(3)]

        assert resolver.released == []
        assert [item.candidate for item in items] == ["b", "c", "x"]
        await scheduler.aclose()

    @pytest.mark.asyncio
    async def test_fallback_from_fill_task(self):
        """A fallback reload triggered inside the fill does not deadlock."""
        resolver = FakeResolver(fail={"b", "c"})
        scheduler = make_scheduler(
            ["a", "b", "c"],
            resolver,
            prefetch_depth=1,
            max_fail=2,
            cooldown_seconds=0.0,
            on_fail=lambda: ["x"],
        )

        first = await scheduler.next()
        await asyncio.wait({scheduler.prefetch_task})
        second = await scheduler.next()

        assert first.candidate == "a"
        assert second.candidate == "x"
        assert scheduler.candidates == ("x",)
        await scheduler.aclose()


@pytest.mark.integration
class TestShutdownWithPrefetch:
    """Shutdown and cleanup of background work."""

    @pytest.mark.asyncio
    async def test_aclose_cancels_fill(self):
        """aclose() cancels a blocked fill and releases buffered items."""
        resolver = FakeResolver()
        resolver.block("c")
        scheduler = make_scheduler(["a", "b", "c"], resolver, prefetch_depth=2)

        await scheduler.next()
        await wait_for_calls(resolver, 3)
        task = scheduler.prefetch_task

        await scheduler.aclose()

        assert task.cancelled()
        assert scheduler.prefetched == 0
        assert resolver.released == ["b"]
        assert await scheduler.next() is None

    @pytest.mark.asyncio
    async def test_shutdown_from_other_thread(self):
        """shutdown() from another thread stops delivery; aclose() cleans up."""
        resolver = FakeResolver()
        scheduler = make_scheduler(["a", "b", "c"], resolver, prefetch_depth=1)
        await scheduler.next()
        await asyncio.wait({scheduler.prefetch_task})

        thread = threading.Thread(target=scheduler.shutdown)
        thread.start()
        thread.join()

        assert scheduler.is_shutting_down
        assert await scheduler.next() is None
        assert scheduler.prefetched == 1

        await scheduler.aclose()

        assert scheduler.prefetched == 0
        assert resolver.released == ["b"]
