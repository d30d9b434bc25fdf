"""Tests for Application."""

import asyncio

import httpx
import pytest

from relay.app import Application
from relay.botpress import BotpressDirectSender, N8NWebhookSender
from relay.config import RelaySettings


class TestApplicationStart:
    """Tests for Application.start()."""

    @pytest.mark.asyncio
    async def test_start_initializes_components(self, application):
        """Test that start initializes all components."""
        assert application._storage is not None
        assert application._recorder is not None
        assert application._store is not None
        assert application._relay is not None
        assert application._sweeper is not None
        assert application._sweeper.running

    @pytest.mark.asyncio
    async def test_start_wires_dependencies(self, application):
        """Test that components share the same store and recorder."""
        assert application.relay.store is application.store
        assert application.relay._recorder is application.recorder
        assert application._sweeper._store is application.store

    @pytest.mark.asyncio
    async def test_start_creates_database_tables(self, application):
        """Test that start creates the trace table."""
        async with application.storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
        assert "trace_events" in tables

    @pytest.mark.asyncio
    async def test_direct_sender_without_workflow_url(self, application):
        """Test that Botpress is the outbound channel when no workflow is set."""
        assert isinstance(application._sender, BotpressDirectSender)

    @pytest.mark.asyncio
    async def test_workflow_sender_when_configured(self, vendor_transport):
        """Test that a workflow URL selects the workflow sender."""
        settings = RelaySettings(n8n_webhook_url="https://n8n.example/webhook/x")
        async with httpx.AsyncClient(transport=vendor_transport) as http:
            app = Application(settings=settings, db_path=":memory:", http_client=http)
            await app.start()
            try:
                assert isinstance(app._sender, N8NWebhookSender)
            finally:
                await app.stop()

    @pytest.mark.asyncio
    async def test_properties_before_start(self, settings):
        """Test that component access before start raises."""
        app = Application(settings=settings, db_path=":memory:")

        with pytest.raises(RuntimeError):
            app.relay
        with pytest.raises(RuntimeError):
            app.storage


class TestApplicationStop:
    """Tests for Application.stop() and reset()."""

    @pytest.mark.asyncio
    async def test_stop_cancels_countdowns(self, settings, vendor_transport):
        """Test that stopping cancels pending quiet-period timers."""
        from conftest import make_fragment

        async with httpx.AsyncClient(transport=vendor_transport) as http:
            app = Application(settings=settings, db_path=":memory:", http_client=http)
            await app.start()
            app.store.append("c1", make_fragment("m1"))
            timer = app.store._buffers["c1"].pending_timer

            await app.stop()

            await asyncio.sleep(0.01)
            assert timer.cancelled()
            assert not app._sweeper.running
            assert app._storage._conn is None

    @pytest.mark.asyncio
    async def test_stop_keeps_injected_http_client_open(self, settings, vendor_transport):
        """Test that an injected HTTP client is left to its owner."""
        async with httpx.AsyncClient(transport=vendor_transport) as http:
            app = Application(settings=settings, db_path=":memory:", http_client=http)
            await app.start()
            await app.stop()

            assert not http.is_closed

    @pytest.mark.asyncio
    async def test_reset_clears_state_and_traces(self, application):
        """Test that reset drops buffers, tracked messages and trace events."""
        await application.relay.track_user_message("c1", "hello")

        await application.reset()

        assert application.store.stats()["trackedMessages"] == 0
        assert await application.storage.get_trace_events() == []

    @pytest.mark.asyncio
    async def test_prune_traces_respects_retention(self, application):
        """Test that trace pruning keeps events inside the retention window."""
        await application.recorder.record("message_tracked", "conversation_tracker", {})

        await application._prune_traces()

        assert len(await application.storage.get_trace_events()) == 1
