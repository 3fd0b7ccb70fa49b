"""
Public poll result export.

Describes the read-only document written after each resolved cycle: the
candidates, their counts, and which one won under which policy.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List

if TYPE_CHECKING:
    from core.tallies.models import TallyOutcome

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class PublicPollOptionResult:
    """
    Aggregated, read-only result for one candidate.
    """

    option_id: str
    label: str
    votes: int = 0
    winner: bool = False

    def to_document(self) -> Dict[str, Any]:
        return {
            "option_id": self.option_id,
            "label": self.label,
            "votes": int(self.votes),
            "winner": bool(self.winner),
        }


@dataclass
class PublicPollSummary:
    """
    Serializable summary of one resolved cycle.
    """

    cycle: int
    query: str
    policy: str
    winner: str
    options: List[PublicPollOptionResult]
    tie_broken: bool
    resolved_at: str
    status: str = "resolved"
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def total_votes(self) -> int:
        return sum(option.votes for option in self.options)

    def to_document(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "status": self.status,
            "query": self.query,
            "policy": self.policy,
            "winner": self.winner,
            "tie_broken": self.tie_broken,
            "total_votes": self.total_votes,
            "options": [option.to_document() for option in self.options],
            "resolved_at": self.resolved_at,
            "metadata": self.metadata or {},
        }

    @classmethod
    def from_outcome(cls, outcome: "TallyOutcome", *, cycle: int) -> "PublicPollSummary":
        """
        Build a summary from a tally outcome without mutating it.

        option_id is the candidate's position so duplicate labels stay
        distinguishable.
        """
        options = [
            PublicPollOptionResult(
                option_id=str(index),
                label=label,
                votes=count,
                winner=index == outcome.index,
            )
            for index, (label, count) in enumerate(outcome.counts_by_candidate())
        ]
        return cls(
            cycle=int(cycle),
            query=outcome.query.value,
            policy=outcome.policy.value,
            winner=outcome.winner,
            options=options,
            tie_broken=outcome.tie_broken,
            resolved_at=outcome.resolved_at,
            metadata={"log_size": outcome.log_size},
        )


@dataclass
class PublicPollExport:
    """
    Container for a public poll export document.
    """

    schema_version: str = "v1"
    generated_at: str = field(default_factory=_utc_now)
    polls: List[PublicPollSummary] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "generated_at": self.generated_at,
            "polls": [poll.to_document() for poll in self.polls],
        }


class PublicPollExportBuilder:
    """
    Convenience builder that assembles the public poll snapshot shape.
    """

    def __init__(self, *, schema_version: str = "v1") -> None:
        self.schema_version = schema_version

    def build(self, polls: Iterable[PublicPollSummary]) -> Dict[str, Any]:
        export = PublicPollExport(
            schema_version=self.schema_version,
            polls=list(polls),
        )
        return export.to_document()
