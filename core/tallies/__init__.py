"""
Tallies package.

Counting of per-cycle responses against a candidate set and selection of the
most or least common candidate under a tie-break policy.
"""

from .engine import (
    count_responses,
    first_occurrences,
    least_common,
    most_common,
    resolve,
)
from .models import (
    PollQuery,
    TallyOutcome,
    TieBreakPolicy,
)

__all__ = [
    "PollQuery",
    "TallyOutcome",
    "TieBreakPolicy",
    "count_responses",
    "first_occurrences",
    "least_common",
    "most_common",
    "resolve",
]
