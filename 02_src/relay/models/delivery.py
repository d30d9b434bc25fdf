"""Delivery and housekeeping result models."""

from dataclasses import dataclass, field
from enum import Enum

from .fragments import Fragment


class PollStatus(str, Enum):
    """Outcome of a delivery poll."""

    READY = "ready"
    ALREADY_DELIVERED = "already_delivered"
    COLLECTING = "collecting"
    EMPTY = "empty"


@dataclass
class PollResult:
    """Response of the delivery gateway for one poll."""

    status: PollStatus
    fragments: list[Fragment] = field(default_factory=list)
    count: int = 0


@dataclass
class SweepReport:
    """What one expiry sweep removed."""

    pruned_fragments: int = 0
    removed_buffers: int = 0
    removed_tracked: int = 0
    skipped_collecting: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.pruned_fragments or self.removed_buffers or self.removed_tracked)
