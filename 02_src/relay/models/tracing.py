"""Tracing and observability data models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class TraceEvent:
    """A single diagnostic event of the relay."""

    id: str
    event_type: str  # e.g. "fragment_received", "buffer_finalized"
    actor: str  # component that recorded it
    data: dict
    timestamp: datetime
