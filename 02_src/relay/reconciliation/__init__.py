"""Reply reconciliation: tracking, collecting, finalizing and delivering bot fragments."""

from .classifier import (
    ExplicitFlagClassifier,
    HeuristicClassifier,
    IAuthorshipClassifier,
    build_classifier,
)
from .finalizer import QuietPeriodFinalizer
from .inbound import parse_webhook_body
from .relay import IReplyRelay, ReplyRelay
from .store import IReconciliationStore, ReconciliationStore
from .sweeper import ExpirySweeper

__all__ = [
    "IReconciliationStore",
    "ReconciliationStore",
    "QuietPeriodFinalizer",
    "ExpirySweeper",
    "IAuthorshipClassifier",
    "ExplicitFlagClassifier",
    "HeuristicClassifier",
    "build_classifier",
    "parse_webhook_body",
    "IReplyRelay",
    "ReplyRelay",
]
