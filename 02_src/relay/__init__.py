"""Support chat relay: Botpress proxy with buffered reply delivery."""

from .app import Application, IApplication
from .config import RelaySettings
from .errors import RelayError, UpstreamUnavailable, ValidationError
from .models import (
    AppendOutcome,
    Authorship,
    BufferState,
    ConversationBuffer,
    Fragment,
    InboundFragment,
    PollResult,
    PollStatus,
    SweepReport,
    TraceEvent,
    TrackedUserMessage,
)
from .reconciliation import (
    ExpirySweeper,
    ExplicitFlagClassifier,
    HeuristicClassifier,
    IAuthorshipClassifier,
    IReconciliationStore,
    IReplyRelay,
    QuietPeriodFinalizer,
    ReconciliationStore,
    ReplyRelay,
)
from .storage import ITraceStorage, TraceStorage
from .tracing import ITraceRecorder, TraceRecorder

__all__ = [
    # Application
    "Application",
    "IApplication",
    "RelaySettings",
    # Errors
    "RelayError",
    "ValidationError",
    "UpstreamUnavailable",
    # Models
    "Fragment",
    "ConversationBuffer",
    "TrackedUserMessage",
    "BufferState",
    "AppendOutcome",
    "InboundFragment",
    "Authorship",
    "PollResult",
    "PollStatus",
    "SweepReport",
    "TraceEvent",
    # Components
    "IReconciliationStore",
    "ReconciliationStore",
    "QuietPeriodFinalizer",
    "ExpirySweeper",
    "IAuthorshipClassifier",
    "ExplicitFlagClassifier",
    "HeuristicClassifier",
    "IReplyRelay",
    "ReplyRelay",
    "ITraceStorage",
    "TraceStorage",
    "ITraceRecorder",
    "TraceRecorder",
]
