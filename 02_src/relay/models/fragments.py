"""Reply fragment and conversation buffer models."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..config import PLACEHOLDER_MARKERS


class BufferState(str, Enum):
    """Quiet-period state of a conversation buffer."""

    COLLECTING = "collecting"
    FINALIZED = "finalized"


class AppendOutcome(str, Enum):
    """Result of offering a fragment to the collector."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED_EMPTY = "rejected_empty"


def usable_text(text: str | None) -> str | None:
    """Return ``text`` unless it is blank or a leaked template placeholder."""
    if not isinstance(text, str) or not text.strip():
        return None
    if any(marker in text for marker in PLACEHOLDER_MARKERS):
        return None
    return text


def usable_image(image: str | None) -> str | None:
    """Return ``image`` unless it is blank or not a string."""
    if not isinstance(image, str) or not image.strip():
        return None
    return image


@dataclass
class Fragment:
    """One piece of a bot reply."""

    id: str
    source_timestamp: float  # producer-side creation time, epoch milliseconds
    received_at: datetime
    text: str | None = None
    image: str | None = None
    delivered: bool = False

    @property
    def has_payload(self) -> bool:
        return usable_text(self.text) is not None or usable_image(self.image) is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "image": self.image,
            "timestamp": self.source_timestamp,
            "receivedAt": self.received_at.isoformat(),
            "delivered": self.delivered,
        }


@dataclass
class ConversationBuffer:
    """Fragments collected for one conversation during one cycle."""

    conversation_id: str
    cycle: int
    created_at: datetime
    fragments: dict[str, Fragment] = field(default_factory=dict)  # id -> Fragment
    finalized: bool = False
    pending_timer: asyncio.Task | None = None

    @property
    def state(self) -> BufferState:
        return BufferState.FINALIZED if self.finalized else BufferState.COLLECTING

    @property
    def has_live_timer(self) -> bool:
        return self.pending_timer is not None and not self.pending_timer.done()

    def ordered(self) -> list[Fragment]:
        """Fragments sorted by source timestamp, ties kept in insertion order."""
        return sorted(self.fragments.values(), key=lambda f: f.source_timestamp)

    def undelivered(self) -> list[Fragment]:
        return [f for f in self.ordered() if not f.delivered]


@dataclass
class TrackedUserMessage:
    """Last outbound user text for a conversation."""

    text: str
    tracked_at: datetime
