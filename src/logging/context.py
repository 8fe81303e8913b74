# src/logging/context.py - v2
"""Contextual logging support: attach document_id, session_id, phase to log records.

Context variables are copied into each asyncio task at creation, so values
set inside a session run stay local to that run.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_document_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_id", default=None
)
_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    document_id: str | None = None
    session_id: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        document_id=_document_id.get(),
        session_id=_session_id.get(),
        phase=_phase.get(),
    )


def set_session_context(document_id: str, session_id: str) -> None:
    """Set document-level context (called once per session run)."""
    _document_id.set(document_id)
    _session_id.set(session_id)


def set_phase(phase: str | None) -> None:
    """Set the current loading phase."""
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _document_id.set(None)
    _session_id.set(None)
    _phase.set(None)
