# src/logging/context.py — v2
"""Contextual logging support — attach run_id, database and phase to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set once per command.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_database: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "database", default=None
)
_phase: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "phase", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    database: str | None = None
    phase: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        database=_database.get(),
        phase=_phase.get(),
    )


def set_run_context(run_id: str, database: str | None = None) -> None:
    """Set run-level context (called once per command)."""
    _run_id.set(run_id)
    _database.set(database)


def set_phase(phase: str | None) -> None:
    """Set the current pipeline phase (parse, backup, words, sentences...)."""
    _phase.set(phase)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _database.set(None)
    _phase.set(None)
