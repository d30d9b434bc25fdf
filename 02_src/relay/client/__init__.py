"""Polling client."""

from .poller import ERROR_REPLY, TIMEOUT_REPLY, PollOutcome, ReplyPoller

__all__ = ["ReplyPoller", "PollOutcome", "TIMEOUT_REPLY", "ERROR_REPLY"]
