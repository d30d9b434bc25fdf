"""Tracing module."""

from .recorder import ITraceRecorder, TraceRecorder

__all__ = ["ITraceRecorder", "TraceRecorder"]
