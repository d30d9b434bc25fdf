"""ReplyRelay: the service HTTP handlers talk to."""

from typing import Any, Protocol

from ..botpress import IOutboundSender
from ..errors import UpstreamUnavailable, ValidationError
from ..logging_config import get_logger
from ..models import (
    AppendOutcome,
    Authorship,
    Fragment,
    PollResult,
    PollStatus,
    SweepReport,
)
from ..tracing import ITraceRecorder
from .classifier import IAuthorshipClassifier
from .inbound import parse_webhook_body
from .store import ReconciliationStore, synthesize_fragment_id

logger = get_logger(__name__)


class IReplyRelay(Protocol):
    """Send user text upstream, collect the asynchronous reply, hand it out once."""

    async def track_user_message(self, conversation_id: str, text: str) -> None:
        """Start a new reply cycle for the conversation."""
        ...

    async def send_user_message(
        self, conversation_id: str, text: str, user_key: str | None = None
    ) -> None:
        """Track the text, then forward it upstream."""
        ...

    async def handle_webhook(self, body: Any) -> AppendOutcome | None:
        """Accept one inbound webhook call."""
        ...

    async def poll(self, conversation_id: str) -> PollResult:
        """Delivery poll for the frontend."""
        ...


class ReplyRelay:
    """Connects the webhook, the outbound sender and the reconciliation store."""

    def __init__(
        self,
        store: ReconciliationStore,
        classifier: IAuthorshipClassifier,
        recorder: ITraceRecorder,
        sender: IOutboundSender | None = None,
    ):
        self._store = store
        self._classifier = classifier
        self._recorder = recorder
        self._sender = sender
        self._store.set_finalized_handler(self._handle_finalized)

    @property
    def store(self) -> ReconciliationStore:
        return self._store

    async def track_user_message(self, conversation_id: str, text: str) -> None:
        """Start a new reply cycle for the conversation."""
        self._store.track(conversation_id, text)
        await self._recorder.record(
            event_type="message_tracked",
            actor="conversation_tracker",
            data={"conversation_id": conversation_id, "text": text[:200]},
        )

    async def send_user_message(
        self, conversation_id: str, text: str, user_key: str | None = None
    ) -> None:
        """Track the text, then forward it upstream.

        Raises ValidationError before any state changes, and
        UpstreamUnavailable when the forward fails.
        """
        if self._sender is None:
            raise UpstreamUnavailable("No outbound channel configured")
        if self._sender.requires_user_key and not user_key:
            raise ValidationError("Missing userKey")

        await self.track_user_message(conversation_id, text)

        try:
            await self._sender.send(conversation_id, text, user_key=user_key)
        except UpstreamUnavailable as e:
            await self._recorder.record(
                event_type="outbound_failed",
                actor="outbound_sender",
                data={"conversation_id": conversation_id, "error": str(e)},
            )
            raise

        await self._recorder.record(
            event_type="outbound_sent",
            actor="outbound_sender",
            data={"conversation_id": conversation_id},
        )

    async def handle_webhook(self, body: Any) -> AppendOutcome | None:
        """Classify and buffer one inbound message, then sweep expired state.

        Returns None when the message is not a bot reply.
        """
        inbound = parse_webhook_body(body)
        if not inbound.conversation_id:
            raise ValidationError("Missing conversationId")

        conversation_id = inbound.conversation_id
        tracked = self._store.tracked_message(conversation_id)
        authorship = self._classifier.classify(inbound, tracked)

        outcome: AppendOutcome | None = None
        if authorship is Authorship.BOT:
            now = self._store.now()
            fragment = Fragment(
                id=inbound.message_id or synthesize_fragment_id(now),
                source_timestamp=(
                    inbound.created_at
                    if inbound.created_at is not None
                    else now.timestamp() * 1000
                ),
                received_at=now,
                text=inbound.text,
                image=inbound.image,
            )
            outcome = self._store.append(conversation_id, fragment)
            await self._recorder.record(
                event_type=(
                    "fragment_received"
                    if outcome is AppendOutcome.ACCEPTED
                    else "fragment_ignored"
                ),
                actor="fragment_collector",
                data={
                    "conversation_id": conversation_id,
                    "fragment_id": fragment.id,
                    "outcome": outcome.value,
                    "has_text": fragment.text is not None,
                    "has_image": fragment.image is not None,
                },
            )
        else:
            logger.info(
                "Ignored %s message for %s", authorship.value, conversation_id
            )
            await self._recorder.record(
                event_type="fragment_ignored",
                actor="fragment_collector",
                data={
                    "conversation_id": conversation_id,
                    "authorship": authorship.value,
                },
            )

        await self.sweep()
        return outcome

    async def poll(self, conversation_id: str) -> PollResult:
        """Delivery poll for the frontend."""
        result = self._store.poll(conversation_id)
        if result.status is PollStatus.READY:
            await self._recorder.record(
                event_type="reply_polled",
                actor="delivery_gateway",
                data={
                    "conversation_id": conversation_id,
                    "fragment_ids": [f.id for f in result.fragments],
                },
            )
        return result

    async def sweep(self) -> SweepReport:
        report = self._store.sweep()
        if report.changed:
            await self.record_sweep(report)
        return report

    async def record_sweep(self, report: SweepReport) -> None:
        await self._recorder.record(
            event_type="sweep_completed",
            actor="expiry_sweeper",
            data={
                "pruned_fragments": report.pruned_fragments,
                "removed_buffers": report.removed_buffers,
                "removed_tracked": report.removed_tracked,
            },
        )

    async def _handle_finalized(
        self, conversation_id: str, fragments: list[Fragment]
    ) -> None:
        await self._recorder.record(
            event_type="buffer_finalized",
            actor="quiet_period_finalizer",
            data={
                "conversation_id": conversation_id,
                "fragment_ids": [f.id for f in fragments],
            },
        )
