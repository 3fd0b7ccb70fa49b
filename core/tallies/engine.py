"""
Tally counting and tie-break resolution.

Everything here is a pure function of (candidates, working_log, query,
policy); the only non-determinism is the RANDOM policy, whose generator can
be injected.
"""
from __future__ import annotations

import math
import random
from typing import Dict, List, Optional, Sequence

from core.errors import EmptyCandidateSetError
from core.responses import normalize_response
from core.tallies.models import PollQuery, TallyOutcome, TieBreakPolicy


def count_responses(candidates: Sequence[str], working_log: Sequence[str]) -> List[int]:
    """
    Count working-log entries equal to each candidate.

    Candidates are compared independently, so duplicate candidates each
    receive the same full count.
    """
    occurrences: Dict[str, int] = {}
    for message in working_log:
        occurrences[message] = occurrences.get(message, 0) + 1
    return [occurrences.get(normalize_response(c), 0) for c in candidates]


def first_occurrences(working_log: Sequence[str]) -> Dict[str, int]:
    """Map each distinct log entry to the index where it first appears."""
    positions: Dict[str, int] = {}
    for position, message in enumerate(working_log):
        positions.setdefault(message, position)
    return positions


def _break_tie(
    tied: Sequence[int],
    candidates: Sequence[str],
    working_log: Sequence[str],
    policy: TieBreakPolicy,
    rng: Optional[random.Random],
) -> int:
    if policy is TieBreakPolicy.RANDOM:
        return (rng or random).choice(list(tied))

    if policy is TieBreakPolicy.FIRST_OPTION:
        return min(tied)

    # FASTEST_REACHED: never-seen candidates rank last; all unseen falls back
    # to candidate order through the index component of the key.
    positions = first_occurrences(working_log)
    return min(
        tied,
        key=lambda i: (positions.get(normalize_response(candidates[i]), math.inf), i),
    )


def resolve(
    candidates: Sequence[str],
    working_log: Sequence[str],
    *,
    query: PollQuery = PollQuery.MOST_COMMON,
    policy: TieBreakPolicy = TieBreakPolicy.RANDOM,
    rng: Optional[random.Random] = None,
) -> TallyOutcome:
    """
    Select one candidate from a fresh tally of working_log.

    A single candidate at the extreme count is returned without consulting
    the policy. Raises EmptyCandidateSetError when candidates is empty.
    """
    options = tuple(candidates)
    if not options:
        raise EmptyCandidateSetError("Cannot resolve a poll without candidates")

    counts = count_responses(options, working_log)
    target = max(counts) if query is PollQuery.MOST_COMMON else min(counts)
    tied = tuple(i for i, count in enumerate(counts) if count == target)

    if len(tied) == 1:
        index = tied[0]
    else:
        index = _break_tie(tied, options, working_log, policy, rng)

    return TallyOutcome(
        candidates=options,
        counts=tuple(counts),
        query=query,
        policy=policy,
        tied_indices=tied,
        index=index,
        log_size=len(working_log),
    )


def most_common(
    candidates: Sequence[str],
    working_log: Sequence[str],
    *,
    policy: TieBreakPolicy = TieBreakPolicy.RANDOM,
    rng: Optional[random.Random] = None,
) -> str:
    return resolve(
        candidates, working_log, query=PollQuery.MOST_COMMON, policy=policy, rng=rng
    ).winner


def least_common(
    candidates: Sequence[str],
    working_log: Sequence[str],
    *,
    policy: TieBreakPolicy = TieBreakPolicy.RANDOM,
    rng: Optional[random.Random] = None,
) -> str:
    return resolve(
        candidates, working_log, query=PollQuery.LEAST_COMMON, policy=policy, rng=rng
    ).winner
