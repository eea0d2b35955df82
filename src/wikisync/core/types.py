"""Shared types for wikisync."""

from __future__ import annotations

from enum import Enum


class RunState(str, Enum):
    """Terminal state of a sync run.

    COMPLETED means statistics were produced (per-item errors allowed).
    FATAL means an error escaped the orchestrator.
    """

    COMPLETED = "completed"
    FATAL = "fatal"

    @property
    def exit_code(self) -> int:
        """Process exit code for this state."""
        return 0 if self is RunState.COMPLETED else 1
