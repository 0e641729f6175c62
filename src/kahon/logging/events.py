"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
swallowed and printed to stderr.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Evaluation
    circular_reference = "circular_reference"
    formula_fallback = "formula_fallback"
    formula_diagnostics = "formula_diagnostics"

    # Staging
    quick_formula_applied = "quick_formula_applied"
    bulk_formula_applied = "bulk_formula_applied"
    changes_discarded = "changes_discarded"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

CIRCULAR_REFERENCE = "circular_reference"
FORMULA_EVAL_FAILED = "formula_eval_failed"
MALFORMED_FORMULA = "malformed_formula"


# ---------------------------------------------------------------------------
# Context trimming
# ---------------------------------------------------------------------------

# Sum-all-above formulas grow with the sheet; keep log lines bounded.
_MAX_VALUE_LEN = 256


def trim_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with long strings truncated."""
    out: dict[str, Any] = {}
    for k, v in context.items():
        if isinstance(v, dict):
            out[k] = trim_context(v)
        elif isinstance(v, list):
            out[k] = [_trim_value(item) for item in v]
        else:
            out[k] = _trim_value(v)
    return out


def _trim_value(v: Any) -> Any:
    if isinstance(v, dict):
        return trim_context(v)
    if isinstance(v, str) and len(v) > _MAX_VALUE_LEN:
        return v[:_MAX_VALUE_LEN] + "...[truncated]"
    return v


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class KahonEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Set by ``set_logs_dir`` / ``set_project_dir``.
_sink: Any = None  # EventSink | None


def set_logs_dir(logs_dir: Path | str | None, *, fsync: bool = False) -> None:
    """Send events to ``<logs_dir>/events.ndjson``; ``None`` disables logging."""
    global _sink
    if logs_dir is None:
        _sink = None
        return

    from kahon.logging.sink import EventSink

    _sink = EventSink(Path(logs_dir), fsync=fsync)


def set_project_dir(project_dir: Path | str) -> None:
    """Configure the module-level event sink for a project directory.

    Reads ``logs_dir`` and ``logging_fsync`` from ``kahon.yaml``.  If this
    is never called, ``emit()`` silently discards events.
    """
    from kahon.config import load_config

    project_dir = Path(project_dir)
    cfg = load_config(project_dir)
    logs_dir = Path(cfg["logs_dir"])
    if not logs_dir.is_absolute():
        logs_dir = project_dir / logs_dir
    set_logs_dir(logs_dir, fsync=bool(cfg.get("logging_fsync", False)))


def _get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if _last_stderr_ts and now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    try:
        print(f"[kahon] {msg}", file=sys.stderr)
    except Exception:
        pass


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: KahonEvent) -> None:
    """Write an event to the configured log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    try:
        sink = _get_sink()
        if sink is None:
            return
        sink.write(event.model_copy(update={"context": trim_context(event.context)}))
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(
        KahonEvent(
            level=EventLevel.info,
            event_type=event_type,
            message=message,
            context=context or {},
        )
    )


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(
        KahonEvent(
            level=EventLevel.warning,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(
        KahonEvent(
            level=EventLevel.error,
            event_type=event_type,
            message=message,
            context=context or {},
            error_code=error_code,
        )
    )
