"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Short enough for fast tests, long enough to observe COLLECTING
QUIET_PERIOD = 0.2


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_fragment(
    fragment_id: str,
    source_timestamp: float = 1000,
    text: str | None = "Hi",
    image: str | None = None,
    received_at: datetime | None = None,
):
    """Build a Fragment with sensible defaults."""
    from relay.models import Fragment

    return Fragment(
        id=fragment_id,
        source_timestamp=source_timestamp,
        received_at=received_at or datetime.now(timezone.utc),
        text=text,
        image=image,
    )


@pytest.fixture
def clock():
    """Fake clock for expiry tests."""
    return FakeClock()


@pytest_asyncio.fixture
async def store():
    """Fresh reconciliation store with a short quiet period."""
    from relay.reconciliation import ReconciliationStore

    st = ReconciliationStore(quiet_period=QUIET_PERIOD, retention=300)
    yield st
    st.clear()


@pytest_asyncio.fixture
async def clocked_store(clock):
    """Store on a fake clock with a quiet period that never elapses during a test."""
    from relay.reconciliation import ReconciliationStore

    st = ReconciliationStore(quiet_period=30, retention=300, clock=clock)
    yield st
    st.clear()


@pytest_asyncio.fixture
async def storage():
    """Create in-memory trace storage for testing."""
    from relay.storage import TraceStorage

    st = TraceStorage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def recorder(storage):
    """Create TraceRecorder with storage."""
    from relay.tracing import TraceRecorder

    return TraceRecorder(storage)


@pytest.fixture
def mock_sender():
    """Create mock outbound sender."""
    sender = Mock()
    sender.requires_user_key = False
    sender.send = AsyncMock(return_value=None)
    return sender


@pytest.fixture
def relay(store, recorder, mock_sender):
    """Create ReplyRelay with heuristic classifier and mock sender."""
    from relay.reconciliation import HeuristicClassifier, ReplyRelay

    return ReplyRelay(
        store=store,
        classifier=HeuristicClassifier(),
        recorder=recorder,
        sender=mock_sender,
    )


@pytest.fixture
def settings():
    """Settings for an application without vendor credentials."""
    from relay.config import RelaySettings

    return RelaySettings(
        quiet_period_seconds=QUIET_PERIOD,
        retention_seconds=300,
        sweep_interval_seconds=60,
        api_id="test-api",
        bearer_token="test-token",
        bot_id="bot-1",
        workspace_id="ws-1",
    )


@pytest.fixture
def vendor_requests():
    """Requests seen by the mocked vendor transport."""
    return []


@pytest.fixture
def vendor_transport(vendor_requests):
    """MockTransport answering the Botpress endpoints used by the relay."""

    def handler(request: httpx.Request) -> httpx.Response:
        vendor_requests.append(request)
        path = request.url.path
        if path.endswith("/users"):
            return httpx.Response(200, json={"user": {"id": "user-1"}, "key": "key-1"})
        if path.endswith("/conversations"):
            return httpx.Response(200, json={"conversation": {"id": "conv-1"}})
        if path.endswith("/messages"):
            return httpx.Response(200, json={"message": {"id": "msg-1"}})
        if path == "/v1/files" and request.method == "GET":
            return httpx.Response(200, json={"files": [{"id": "file-1"}]})
        if path.startswith("/v1/files/") and request.method == "DELETE":
            return httpx.Response(200, json={})
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)


@pytest_asyncio.fixture
async def application(settings, vendor_transport):
    """Started Application with in-memory trace storage and mocked vendor HTTP."""
    from relay.app import Application

    http = httpx.AsyncClient(transport=vendor_transport)
    app = Application(settings=settings, db_path=":memory:", http_client=http)
    await app.start()
    yield app
    await app.stop()
    await http.aclose()


@pytest_asyncio.fixture
async def api_client(application):
    """HTTP client bound to the FastAPI app (lifespan not run; application already started)."""
    from relay.api import create_fastapi_app

    fastapi_app = create_fastapi_app(application)
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
