"""Tests for the in-flight interactive sign-in tracker."""
import asyncio

from tokenkeeper.oauth import InflightOAuthTracker


class TestInflightOAuthTracker:
    async def test_wait_returns_immediately_when_idle(self):
        tracker = InflightOAuthTracker()
        await asyncio.wait_for(tracker.wait(), timeout=1)
        assert not tracker.in_flight

    async def test_wait_blocks_until_finish(self):
        tracker = InflightOAuthTracker()
        tracker.start()
        waiter = asyncio.ensure_future(tracker.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        tracker.finish()
        await asyncio.wait_for(waiter, timeout=1)
        assert not tracker.in_flight

    async def test_nested_flows(self):
        tracker = InflightOAuthTracker()
        tracker.start()
        tracker.start()
        tracker.finish()
        assert tracker.in_flight
        tracker.finish()
        assert not tracker.in_flight

    async def test_finish_without_start_is_ignored(self):
        tracker = InflightOAuthTracker()
        tracker.finish()
        assert not tracker.in_flight

    async def test_track_context_manager(self):
        tracker = InflightOAuthTracker()
        async with tracker.track():
            assert tracker.in_flight
        assert not tracker.in_flight
