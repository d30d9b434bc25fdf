"""Tests for TraceStorage."""

from datetime import datetime, timedelta, timezone

import pytest

from relay.models import TraceEvent


def event(event_type="fragment_received", actor="fragment_collector", at=None, **data):
    return TraceEvent(
        id=None,
        event_type=event_type,
        actor=actor,
        data=data,
        timestamp=at or datetime.now(timezone.utc),
    )


class TestTraceStorage:
    """Tests for trace event persistence."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, storage):
        """Test saving and reading back a trace event."""
        await storage.save_trace_event(event(conversation_id="c1"))

        events = await storage.get_trace_events()

        assert len(events) == 1
        assert events[0].id
        assert events[0].event_type == "fragment_received"
        assert events[0].data == {"conversation_id": "c1"}
        assert events[0].timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_newest_first_and_limit(self, storage):
        """Test ordering and limit."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            await storage.save_trace_event(event(at=base + timedelta(seconds=i), n=i))

        events = await storage.get_trace_events(limit=3)

        assert [e.data["n"] for e in events] == [4, 3, 2]

    @pytest.mark.asyncio
    async def test_filters(self, storage):
        """Test filtering by type, actor and time."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await storage.save_trace_event(event("message_tracked", "conversation_tracker", base))
        await storage.save_trace_event(
            event("buffer_finalized", "quiet_period_finalizer", base + timedelta(seconds=5))
        )
        await storage.save_trace_event(
            event("reply_polled", "delivery_gateway", base + timedelta(seconds=10))
        )

        by_type = await storage.get_trace_events(event_types=["message_tracked", "reply_polled"])
        by_actor = await storage.get_trace_events(actor="quiet_period_finalizer")
        after = await storage.get_trace_events(after=base + timedelta(seconds=1))

        assert {e.event_type for e in by_type} == {"message_tracked", "reply_polled"}
        assert [e.event_type for e in by_actor] == ["buffer_finalized"]
        assert [e.event_type for e in after] == ["reply_polled", "buffer_finalized"]

    @pytest.mark.asyncio
    async def test_non_json_data_is_stringified(self, storage):
        """Test that datetimes inside data are stored as strings."""
        at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await storage.save_trace_event(event(when=at))

        events = await storage.get_trace_events()

        assert events[0].data["when"] == str(at)

    @pytest.mark.asyncio
    async def test_clear(self, storage):
        """Test that clear removes every event."""
        await storage.save_trace_event(event())
        await storage.clear()

        assert await storage.get_trace_events() == []

    @pytest.mark.asyncio
    async def test_requires_init(self):
        """Test that using storage before init raises."""
        from relay.storage import TraceStorage

        storage = TraceStorage(":memory:")

        with pytest.raises(RuntimeError):
            await storage.save_trace_event(event())

    @pytest.mark.asyncio
    async def test_filter_by_conversation(self, storage):
        """Test that events are indexed by the conversation in their data."""
        await storage.save_trace_event(event(conversation_id="c1"))
        await storage.save_trace_event(event(conversation_id="c2"))
        await storage.save_trace_event(event("sweep_completed", "expiry_sweeper"))

        events = await storage.get_trace_events(conversation_id="c1")

        assert [e.data["conversation_id"] for e in events] == ["c1"]

    @pytest.mark.asyncio
    async def test_prune(self, storage):
        """Test that prune removes only events before the cutoff."""
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await storage.save_trace_event(event(at=base, n=0))
        await storage.save_trace_event(event(at=base + timedelta(hours=2), n=1))

        removed = await storage.prune(base + timedelta(hours=1))

        assert removed == 1
        assert [e.data["n"] for e in await storage.get_trace_events()] == [1]
