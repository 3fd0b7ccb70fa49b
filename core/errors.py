"""
Poll engine error taxonomy.

Only caller contract violations are raised. Malformed chat lines and
per-viewer dedup rejections are expected outcomes and never surface here.
"""

from __future__ import annotations


class PollError(RuntimeError):
    """Base class for poll engine failures."""


class EmptyCandidateSetError(PollError, ValueError):
    """Raised when a tally is requested against zero candidates."""


class EngineStoppedError(PollError):
    """Raised when a resolution is requested after the engine was stopped."""


__all__ = [
    "PollError",
    "EmptyCandidateSetError",
    "EngineStoppedError",
]
