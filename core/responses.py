"""
Per-cycle response filtering.

The filter decides whether a parsed chat entry contributes to the current
cycle's working log. It performs no locking of its own: PollEngine owns the
lock around every call that touches CycleState.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Set

from shared.chat.events import ChatEntry
from shared.logging.logger import get_logger
from shared.storage.transcript import Transcript

log = get_logger("core.responses")


def normalize_response(text: str) -> str:
    return (text or "").strip().lower()


class Verdict(str, Enum):
    COUNTED = "counted"        # appended to the working log
    UNMATCHED = "unmatched"    # transcript only; viewer may still answer
    DUPLICATE = "duplicate"    # viewer already answered this cycle

    @property
    def counted(self) -> bool:
        return self is Verdict.COUNTED


@dataclass
class CycleState:
    """
    Everything accepted since the last reset.

    working_log keeps insertion order (fastest-reached tie-breaks depend on
    it); submitted_viewers is only populated when per-viewer dedup is on.
    """

    working_log: List[str] = field(default_factory=list)
    submitted_viewers: Set[str] = field(default_factory=set)

    def clear(self) -> None:
        self.working_log.clear()
        self.submitted_viewers.clear()

    def is_empty(self) -> bool:
        return not self.working_log and not self.submitted_viewers


class ResponseFilter:
    """
    Applies the dedup and candidate-membership rules to one chat entry.

    - dedup off: every message is normalized and appended, matching or not
    - dedup on: one counted answer per viewer per cycle, and only answers
      that match a candidate count (a miss does not use up the viewer's turn)

    Every entry that is not a repeat answer is also written to the
    transcript, whether or not it counts.
    """

    def __init__(
        self,
        *,
        dedup_per_viewer: bool = False,
        transcript: Optional[Transcript] = None,
    ) -> None:
        self.dedup_per_viewer = bool(dedup_per_viewer)
        self.transcript = transcript

    def accept(
        self,
        entry: ChatEntry,
        candidates: Sequence[str],
        state: CycleState,
    ) -> Verdict:
        message = normalize_response(entry.text)

        if not self.dedup_per_viewer:
            self._record_transcript(entry)
            state.working_log.append(message)
            return Verdict.COUNTED

        if entry.viewer in state.submitted_viewers:
            log.debug(f"Ignoring repeat answer from {entry.viewer}")
            return Verdict.DUPLICATE

        self._record_transcript(entry)

        if message not in {normalize_response(c) for c in candidates}:
            return Verdict.UNMATCHED

        state.submitted_viewers.add(entry.viewer)
        state.working_log.append(message)
        return Verdict.COUNTED

    def _record_transcript(self, entry: ChatEntry) -> None:
        if self.transcript is not None:
            self.transcript.append(entry)


__all__ = ["CycleState", "ResponseFilter", "Verdict", "normalize_response"]
