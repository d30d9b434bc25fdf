"""TraceRecorder: creates TraceEvents for relay activity."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..logging_config import get_logger
from ..models import TraceEvent
from ..storage import ITraceStorage

logger = get_logger(__name__)


class ITraceRecorder(Protocol):
    """Records diagnostic TraceEvents."""

    async def record(self, event_type: str, actor: str, data: dict) -> None:
        """Create a TraceEvent and save it to storage."""
        ...


class TraceRecorder:
    """Writes TraceEvents to storage; failures are logged, never raised."""

    def __init__(self, storage: ITraceStorage):
        self._storage = storage

    async def record(self, event_type: str, actor: str, data: dict) -> None:
        """Create a TraceEvent and save it to storage."""
        trace_event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            await self._storage.save_trace_event(trace_event)
        except Exception as e:
            logger.warning("Could not record %s trace event: %s", event_type, e)
