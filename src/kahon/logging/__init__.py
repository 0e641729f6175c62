"""Structured event logging for kahon.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from kahon.logging.events import (
    EventLevel,
    EventType,
    KahonEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    set_logs_dir,
    set_project_dir,
    trim_context,
)
from kahon.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "KahonEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "set_logs_dir",
    "set_project_dir",
    "trim_context",
]
