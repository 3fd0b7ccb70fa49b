"""
Tally data model.

Selection policies and the serializable outcome of one resolution. Counting
and tie-breaking live in core.tallies.engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Tuple


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TieBreakPolicy(str, Enum):
    """
    How to pick one candidate when several share the extreme count.

    RANDOM: uniform choice among the tied candidates.
    FIRST_OPTION: the tied candidate listed first in the candidate set.
    FASTEST_REACHED: the tied candidate that appeared earliest in the cycle.
    """

    RANDOM = "random"
    FIRST_OPTION = "first_option"
    FASTEST_REACHED = "fastest_reached"

    @classmethod
    def parse(cls, value: Any) -> "TieBreakPolicy":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        for policy in cls:
            if policy.value == key or policy.name.lower() == key:
                return policy
        raise ValueError(f"Unknown tie-break policy: {value!r}")


class PollQuery(str, Enum):
    """Which end of the tally a resolution optimizes for."""

    MOST_COMMON = "most_common"
    LEAST_COMMON = "least_common"

    @classmethod
    def parse(cls, value: Any) -> "PollQuery":
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        for query in cls:
            if query.value == key:
                return query
        raise ValueError(f"Unknown poll query: {value!r}")


@dataclass(frozen=True)
class TallyOutcome:
    """
    Result of one resolution against a candidate set.

    counts is index-aligned with candidates. tied_indices lists every
    candidate sharing the extreme count; tie_broken is True only when the
    policy had to choose among more than one.
    """

    candidates: Tuple[str, ...]
    counts: Tuple[int, ...]
    query: PollQuery
    policy: TieBreakPolicy
    tied_indices: Tuple[int, ...]
    index: int
    log_size: int = 0
    resolved_at: str = field(default_factory=_utc_now)

    @property
    def winner(self) -> str:
        return self.candidates[self.index]

    @property
    def tie_broken(self) -> bool:
        return len(self.tied_indices) > 1

    def counts_by_candidate(self) -> List[Tuple[str, int]]:
        return list(zip(self.candidates, self.counts))

    def to_document(self) -> Dict[str, Any]:
        return {
            "query": self.query.value,
            "policy": self.policy.value,
            "winner": self.winner,
            "index": self.index,
            "candidates": list(self.candidates),
            "counts": list(self.counts),
            "tied_indices": list(self.tied_indices),
            "tie_broken": self.tie_broken,
            "log_size": self.log_size,
            "resolved_at": self.resolved_at,
        }
