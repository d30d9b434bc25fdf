"""Core data models for the support chat relay."""

from .delivery import PollResult, PollStatus, SweepReport
from .fragments import (
    AppendOutcome,
    BufferState,
    ConversationBuffer,
    Fragment,
    TrackedUserMessage,
    usable_image,
    usable_text,
)
from .inbound import Authorship, InboundFragment
from .tracing import TraceEvent

__all__ = [
    # Fragments
    "Fragment",
    "ConversationBuffer",
    "TrackedUserMessage",
    "BufferState",
    "AppendOutcome",
    "usable_image",
    "usable_text",
    # Inbound
    "InboundFragment",
    "Authorship",
    # Delivery
    "PollResult",
    "PollStatus",
    "SweepReport",
    # Tracing
    "TraceEvent",
]
