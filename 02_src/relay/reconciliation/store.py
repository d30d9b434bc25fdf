"""ReconciliationStore: per-conversation reply buffers and tracked user messages."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Protocol

from ..errors import ValidationError
from ..logging_config import get_logger
from ..models import (
    AppendOutcome,
    ConversationBuffer,
    Fragment,
    PollResult,
    PollStatus,
    SweepReport,
    TrackedUserMessage,
    usable_image,
    usable_text,
)
from .finalizer import QuietPeriodFinalizer

logger = get_logger(__name__)


Clock = Callable[[], datetime]
FinalizedHandler = Callable[[str, list[Fragment]], Awaitable[None]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def synthesize_fragment_id(now: datetime) -> str:
    """Fragment id for payloads that carry no vendor id."""
    return f"bot-msg-{int(now.timestamp() * 1000)}-{secrets.token_hex(3)}"


class IReconciliationStore(Protocol):
    """Owner of all in-memory reconciliation state."""

    def track(self, conversation_id: str, text: str) -> TrackedUserMessage:
        """Record the outbound user text and start a new collection cycle."""
        ...

    def append(self, conversation_id: str, fragment: Fragment) -> AppendOutcome:
        """Add a reply fragment and (re)arm the quiet-period countdown."""
        ...

    def poll(self, conversation_id: str) -> PollResult:
        """Return finalized, undelivered fragments exactly once."""
        ...

    def sweep(self) -> SweepReport:
        """Drop expired fragments, buffers and tracked messages."""
        ...


class ReconciliationStore:
    """In-memory reconciliation state, constructed once per process.

    All mutation goes through ``track``, ``append``, ``poll`` and ``sweep``.
    Each runs to completion inside one event-loop turn, so no locking is
    needed; the only deferred work is the quiet-period countdown owned by
    each buffer.
    """

    def __init__(
        self,
        quiet_period: float = 6.0,
        retention: float = 300.0,
        clock: Clock = utc_now,
    ):
        self._retention = timedelta(seconds=retention)
        self._clock = clock
        self._finalizer = QuietPeriodFinalizer(quiet_period, self._on_quiet_period)
        self._on_finalized: FinalizedHandler | None = None

        self._buffers: dict[str, ConversationBuffer] = {}
        self._tracked: dict[str, TrackedUserMessage] = {}
        self._cycles: dict[str, int] = {}

    def set_finalized_handler(self, handler: FinalizedHandler | None) -> None:
        """Register a coroutine awaited after a buffer finalizes."""
        self._on_finalized = handler

    def now(self) -> datetime:
        return self._clock()

    # Conversation tracker
    def track(self, conversation_id: str, text: str) -> TrackedUserMessage:
        """Record ``text`` as the latest user message and reset the cycle."""
        if not conversation_id or not text or not text.strip():
            raise ValidationError("Missing conversationId or text")

        self._reset_cycle(conversation_id)

        tracked = TrackedUserMessage(text=text, tracked_at=self._clock())
        self._tracked[conversation_id] = tracked
        logger.info(
            "Tracked user message for %s",
            conversation_id,
            extra={"context": {"cycle": self._cycles[conversation_id]}},
        )
        return tracked

    def tracked_message(self, conversation_id: str) -> TrackedUserMessage | None:
        return self._tracked.get(conversation_id)

    def _reset_cycle(self, conversation_id: str) -> None:
        self._cycles[conversation_id] = self._cycles.get(conversation_id, 0) + 1

        buffer = self._buffers.pop(conversation_id, None)
        if buffer is not None:
            self._finalizer.cancel(buffer)
            logger.debug(
                "Discarded %d fragment(s) from previous cycle of %s",
                len(buffer.fragments),
                conversation_id,
            )

    # Fragment collector
    def append(self, conversation_id: str, fragment: Fragment) -> AppendOutcome:
        """Add ``fragment`` to the conversation buffer, creating it if absent."""
        if not conversation_id:
            raise ValidationError("Missing conversationId")

        if not fragment.has_payload:
            logger.debug("Rejected empty fragment for %s", conversation_id)
            return AppendOutcome.REJECTED_EMPTY
        fragment.text = usable_text(fragment.text)
        fragment.image = usable_image(fragment.image)

        buffer = self._buffers.get(conversation_id)
        if buffer is None:
            buffer = ConversationBuffer(
                conversation_id=conversation_id,
                cycle=self._cycles.get(conversation_id, 0),
                created_at=self._clock(),
            )
            self._buffers[conversation_id] = buffer

        if fragment.id in buffer.fragments:
            logger.debug("Duplicate fragment %s for %s", fragment.id, conversation_id)
            return AppendOutcome.DUPLICATE

        buffer.fragments[fragment.id] = fragment

        if buffer.finalized:
            logger.info(
                "Late fragment %s for finalized buffer %s queued for next poll",
                fragment.id,
                conversation_id,
            )
        else:
            self._finalizer.arm(buffer)

        logger.info(
            "Buffered fragment %s for %s (%d pending)",
            fragment.id,
            conversation_id,
            len(buffer.fragments),
        )
        return AppendOutcome.ACCEPTED

    # Quiet-period finalizer callback
    async def _on_quiet_period(self, buffer: ConversationBuffer) -> None:
        conversation_id = buffer.conversation_id
        if (
            self._buffers.get(conversation_id) is not buffer
            or self._cycles.get(conversation_id, 0) != buffer.cycle
        ):
            logger.debug("Orphan countdown for %s ignored", conversation_id)
            return

        buffer.finalized = True
        # The echo window closes with the reply
        self._tracked.pop(conversation_id, None)

        ordered = buffer.ordered()
        logger.info(
            "Finalized %d fragment(s) for %s",
            len(ordered),
            conversation_id,
            extra={"context": {"order": [f.id for f in ordered]}},
        )

        if self._on_finalized:
            await self._on_finalized(conversation_id, ordered)

    # Delivery gateway
    def poll(self, conversation_id: str) -> PollResult:
        """Deliver every finalized, undelivered fragment once."""
        buffer = self._buffers.get(conversation_id)
        if buffer is None:
            return PollResult(status=PollStatus.EMPTY)

        if not buffer.finalized:
            return PollResult(status=PollStatus.COLLECTING, count=len(buffer.fragments))

        pending = buffer.undelivered()
        if not pending:
            return PollResult(status=PollStatus.ALREADY_DELIVERED)

        for fragment in pending:
            fragment.delivered = True

        logger.info("Delivered %d fragment(s) for %s", len(pending), conversation_id)
        return PollResult(status=PollStatus.READY, fragments=pending, count=len(pending))

    # Expiry sweeper
    def sweep(self) -> SweepReport:
        """Remove state older than the retention window.

        Buffers still collecting behind a live countdown are left alone
        regardless of age.
        """
        report = SweepReport()
        cutoff = self._clock() - self._retention

        for conversation_id, buffer in list(self._buffers.items()):
            if not buffer.finalized and buffer.has_live_timer:
                report.skipped_collecting += 1
                continue

            kept = {
                fid: f for fid, f in buffer.fragments.items() if f.received_at >= cutoff
            }
            report.pruned_fragments += len(buffer.fragments) - len(kept)
            buffer.fragments = kept

            if not kept:
                self._finalizer.cancel(buffer)
                del self._buffers[conversation_id]
                report.removed_buffers += 1

        for conversation_id, tracked in list(self._tracked.items()):
            if tracked.tracked_at < cutoff:
                del self._tracked[conversation_id]
                report.removed_tracked += 1

        if report.changed:
            logger.info(
                "Sweep removed %d fragment(s), %d buffer(s), %d tracked message(s)",
                report.pruned_fragments,
                report.removed_buffers,
                report.removed_tracked,
            )
        return report

    # Housekeeping
    def clear(self) -> dict:
        """Drop all state, cancelling every countdown. Returns prior counts."""
        counts = self.stats()
        for buffer in self._buffers.values():
            self._finalizer.cancel(buffer)
        self._buffers.clear()
        self._tracked.clear()
        return counts

    def stats(self) -> dict:
        return {
            "buffers": len(self._buffers),
            "trackedMessages": len(self._tracked),
            "bufferedFragments": sum(len(b.fragments) for b in self._buffers.values()),
        }

    def snapshot(self) -> dict:
        """Debug view of buffers and tracked messages."""
        buffers = {}
        for conversation_id, buffer in self._buffers.items():
            buffers[conversation_id] = {
                "cycle": buffer.cycle,
                "state": buffer.state.value,
                "timerActive": buffer.has_live_timer,
                "createdAt": buffer.created_at.isoformat(),
                "fragments": [
                    {
                        "id": f.id,
                        "text": (f.text[:50] + "...") if f.text and len(f.text) > 50 else f.text,
                        "hasImage": bool(f.image),
                        "timestamp": f.source_timestamp,
                        "receivedAt": f.received_at.isoformat(),
                        "delivered": f.delivered,
                    }
                    for f in buffer.ordered()
                ],
            }
        tracked = {
            conversation_id: {"text": t.text, "trackedAt": t.tracked_at.isoformat()}
            for conversation_id, t in self._tracked.items()
        }
        return {"buffers": buffers, "trackedMessages": tracked}
