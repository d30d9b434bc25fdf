"""Tests for expiry sweeping."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from relay.models import PollStatus, SweepReport
from relay.reconciliation import ExpirySweeper

from conftest import make_fragment


async def finalize_now(store, conversation_id):
    """Finalize a buffer without waiting for the countdown."""
    buffer = store._buffers[conversation_id]
    store._finalizer.cancel(buffer)
    await store._on_quiet_period(buffer)


class TestSweep:
    """Tests for ReconciliationStore.sweep()."""

    @pytest.mark.asyncio
    async def test_fresh_state_survives(self, clocked_store, clock):
        """Test that nothing inside the retention window is removed."""
        clocked_store.track("c1", "hello")
        clocked_store.append("c1", make_fragment("m1", received_at=clock()))
        await finalize_now(clocked_store, "c1")
        clocked_store.track("c2", "hi")

        clock.advance(120)
        report = clocked_store.sweep()

        assert not report.changed
        assert clocked_store.stats()["buffers"] == 1
        assert clocked_store.tracked_message("c2") is not None

    @pytest.mark.asyncio
    async def test_collecting_buffer_with_live_timer_survives(self, clocked_store, clock):
        """Test that an old buffer still waiting for its countdown is kept."""
        clocked_store.append("c1", make_fragment("m1", received_at=clock()))

        clock.advance(400)
        report = clocked_store.sweep()

        assert report.skipped_collecting == 1
        assert report.pruned_fragments == 0
        assert clocked_store.poll("c1").status is PollStatus.COLLECTING

    @pytest.mark.asyncio
    async def test_finalized_old_buffer_removed(self, clocked_store, clock):
        """Test that expired fragments go and an emptied buffer goes with them."""
        clocked_store.append("c1", make_fragment("m1", received_at=clock()))
        await finalize_now(clocked_store, "c1")

        clock.advance(301)
        report = clocked_store.sweep()

        assert report.pruned_fragments == 1
        assert report.removed_buffers == 1
        assert clocked_store.poll("c1").status is PollStatus.EMPTY

    @pytest.mark.asyncio
    async def test_partial_prune_keeps_buffer(self, clocked_store, clock):
        """Test that only fragments past retention are dropped."""
        clocked_store.append("c1", make_fragment("old", received_at=clock()))
        await finalize_now(clocked_store, "c1")
        clock.advance(200)
        clocked_store.append("c1", make_fragment("new", received_at=clock()))

        clock.advance(150)
        report = clocked_store.sweep()

        assert report.pruned_fragments == 1
        assert report.removed_buffers == 0
        assert list(clocked_store._buffers["c1"].fragments) == ["new"]

    @pytest.mark.asyncio
    async def test_tracked_message_expires(self, clocked_store, clock):
        """Test that tracked user messages older than retention are dropped."""
        clocked_store.track("c1", "hello")

        clock.advance(301)
        report = clocked_store.sweep()

        assert report.removed_tracked == 1
        assert clocked_store.tracked_message("c1") is None

    @pytest.mark.asyncio
    async def test_sweep_without_state_is_noop(self, clocked_store):
        """Test that sweeping an empty store reports no change."""
        report = clocked_store.sweep()

        assert report == SweepReport()
        assert not report.changed


class TestExpirySweeper:
    """Tests for the periodic ExpirySweeper task."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, clocked_store):
        """Test that the background task starts once and stops cleanly."""
        sweeper = ExpirySweeper(clocked_store, interval=60)

        await sweeper.start()
        task = sweeper._task
        await sweeper.start()

        assert sweeper.running
        assert sweeper._task is task

        await sweeper.stop()
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_sweep_once_reports_changes(self, clocked_store, clock):
        """Test that the handler is awaited only when the sweep removed something."""
        on_sweep = AsyncMock()
        sweeper = ExpirySweeper(clocked_store, interval=60, on_sweep=on_sweep)

        await sweeper.sweep_once()
        on_sweep.assert_not_called()

        clocked_store.track("c1", "hello")
        clock.advance(301)
        report = await sweeper.sweep_once()

        assert report.removed_tracked == 1
        on_sweep.assert_awaited_once_with(report)

    @pytest.mark.asyncio
    async def test_loop_sweeps_on_interval(self, clocked_store, clock):
        """Test that the running loop sweeps without outside prompting."""
        clocked_store.track("c1", "hello")
        clock.advance(301)
        sweeper = ExpirySweeper(clocked_store, interval=0.05)

        await sweeper.start()
        await asyncio.sleep(0.15)
        await sweeper.stop()

        assert clocked_store.tracked_message("c1") is None

    @pytest.mark.asyncio
    async def test_loop_survives_sweep_errors(self, clocked_store):
        """Test that one failing sweep does not end the loop."""
        on_sweep = AsyncMock(side_effect=RuntimeError("boom"))
        sweeper = ExpirySweeper(clocked_store, interval=0.02, on_sweep=on_sweep)
        clocked_store.sweep = lambda: SweepReport(removed_tracked=1)

        await sweeper.start()
        await asyncio.sleep(0.1)

        assert sweeper.running
        assert on_sweep.await_count >= 2
        await sweeper.stop()
